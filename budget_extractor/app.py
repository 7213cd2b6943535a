from fastapi import FastAPI, HTTPException

from .config import ExtractorConfig
from .exceptions import ExtractionError, PDFCorruptedError, PDFNotFoundError
from .models import ExtractRequest, ExtractResponse, UsageSummary
from .service import ExtractionService


def create_app(
    config: ExtractorConfig | None = None,
    service: ExtractionService | None = None,
) -> FastAPI:
    service = service or ExtractionService(config=config or ExtractorConfig.from_env())
    app = FastAPI(
        title="Budget Extractor Service",
        version="1.0.0",
        description="Construction budget extraction via chunked LLM requests.",
    )

    @app.get("/health")
    def health() -> dict:
        return {"status": "ok"}

    @app.post("/extract", response_model=ExtractResponse)
    def extract(request: ExtractRequest) -> ExtractResponse:
        try:
            result, document_id, output_path = service.extract_pdf(
                request.pdf_path, document_id=request.document_id
            )
        except PDFNotFoundError as exc:
            raise HTTPException(status_code=404, detail=str(exc)) from exc
        except PDFCorruptedError as exc:
            raise HTTPException(status_code=422, detail=str(exc)) from exc
        except ExtractionError as exc:
            raise HTTPException(status_code=502, detail=str(exc)) from exc
        except ValueError as exc:
            raise HTTPException(status_code=422, detail=str(exc)) from exc

        usage = result.ai_usage
        return ExtractResponse(
            document_id=document_id,
            output_path=output_path,
            items=len(result.items),
            total_tokens=usage.total_tokens if usage else 0,
            estimated_cost=usage.estimated_cost if usage else 0.0,
        )

    @app.get("/budgets/{document_id}")
    def get_budget(document_id: str) -> dict:
        try:
            result = service.load_result(document_id)
        except ValueError as exc:
            raise HTTPException(status_code=422, detail=str(exc)) from exc
        if result is None:
            raise HTTPException(status_code=404, detail=f"No budget for '{document_id}'")
        return result.to_dict()

    @app.get("/usage", response_model=UsageSummary)
    def usage() -> UsageSummary:
        return service.usage_summary()

    return app
