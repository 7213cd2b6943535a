"""
Prompt templates for chunked budget extraction.

One fixed instruction is sent with every chunk. The model is asked for a
JSON object with an "items" array mixing priced lines and category
separators, in the order they appear in the text.

Optimized for Spanish/English construction budgets (presupuestos de obra).
"""

SYSTEM_PROMPT = (
    "You extract structured data from construction budget documents. "
    "Respond with valid JSON only."
)

CHUNK_EXTRACTION_PROMPT = """
Extract budget items from this construction budget PDF text chunk {chunk_number}. Extract both line items and category separators:

For LINE ITEMS, identify:
- lineId: Any item number from PDF (like "1.1", "A.01", "001", etc.) or null if none
- description: Full text describing the work/item
- quantity: Numeric value (default 1 if unclear)
- unit: Unit like "m²", "ml", "ud", "h", etc. (default "ud" if unclear)
- unitPrice: Price per unit in euros (default 0 if unclear)
- total: Total cost in euros (default 0 if unclear)

For SEPARATORS (category headers, section titles), identify:
- description: The header/category text
- Set all other fields to null/0

Keep the items in the order they appear in the text.

Return JSON in this exact format:
{{
  "items": [
    {{
      "type": "separator",
      "lineId": null,
      "description": "Category or section header text",
      "quantity": null,
      "unit": null,
      "unitPrice": 0,
      "total": 0
    }},
    {{
      "type": "line",
      "lineId": "1.1",
      "description": "Line item description",
      "quantity": 5,
      "unit": "m²",
      "unitPrice": 25.50,
      "total": 127.50
    }}
  ]
}}

Text to process:
{text}
"""


def get_chunk_extraction_prompt(chunk_text: str, chunk_number: int) -> str:
    """
    Build the user prompt for one chunk.

    Args:
        chunk_text: Segment of the document text
        chunk_number: 1-based position of the chunk in the run
    """
    return CHUNK_EXTRACTION_PROMPT.format(chunk_number=chunk_number, text=chunk_text)
