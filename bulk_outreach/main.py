from contextlib import asynccontextmanager
from dataclasses import dataclass
from fastapi import FastAPI, File, UploadFile, Form, Query, Request, Depends
from fastapi.middleware.cors import CORSMiddleware
from fastapi.responses import StreamingResponse
from pydantic import BaseModel, ConfigDict, Field
from typing import Optional
import json
import logging
import os
from dotenv import load_dotenv

# Load environment variables from .env file
load_dotenv()

# Configure logging
logging.basicConfig(
    level=os.getenv("LOG_LEVEL", "INFO").upper(),
    format="%(asctime)s %(levelname)s %(name)s: %(message)s"
)
logger = logging.getLogger(__name__)

from . import __version__
from .ai_generator import AIEmailGenerator
from .config import ProcessingConfig
from .database.connection import DatabaseConfig, DatabaseManager
from .database.services import BulkJobStore
from .errors import BulkJobError, ValidationError, bulk_job_error_handler
from .job_processor import BulkJobController
from .scraper import WebsiteResearcher
from .styles import DEFAULT_STYLE_SLUG, get_styles_summary
from .utils import calculate_file_size_mb, extract_attachment_text

AUTO_CREATE_TABLES = os.getenv("AUTO_CREATE_TABLES", "true").lower() == "true"


class JobRequest(BaseModel):
    model_config = ConfigDict(populate_by_name=True)

    job_id: str = Field(alias="jobId", min_length=1)


class RegenerateRequest(JobRequest):
    style_slug: str = Field(alias="styleSlug", min_length=1)


@dataclass
class Services:
    """Collaborators owned by the running application"""
    db_manager: DatabaseManager
    researcher: WebsiteResearcher
    generator: AIEmailGenerator
    controller: BulkJobController

    async def aclose(self):
        await self.researcher.aclose()
        await self.generator.aclose()
        self.db_manager.close()


def build_services() -> Services:
    """Wire the store, collaborators and controller from environment configuration"""
    db_manager = DatabaseManager(DatabaseConfig())
    if AUTO_CREATE_TABLES:
        db_manager.create_tables()

    config = ProcessingConfig()
    is_valid, error_msg = config.validate_config()
    if not is_valid:
        raise RuntimeError(f"Invalid processing configuration: {error_msg}")

    researcher = WebsiteResearcher()
    generator = AIEmailGenerator()
    ai_valid, ai_error = generator.validate_configuration()
    if not ai_valid:
        logger.warning(f"AI generation not configured: {ai_error}")

    controller = BulkJobController(
        store=BulkJobStore(db_manager),
        researcher=researcher,
        generator=generator,
        config=config,
    )
    return Services(db_manager, researcher, generator, controller)


@asynccontextmanager
async def lifespan(app: FastAPI):
    services = None
    if getattr(app.state, "controller", None) is None:
        services = build_services()
        app.state.controller = services.controller
        logger.info("Bulk outreach services started")
    yield
    if services is not None:
        await services.aclose()


def get_controller(request: Request) -> BulkJobController:
    return request.app.state.controller


async def read_attachment(attached_file: Optional[UploadFile]) -> Optional[str]:
    """Extracted text of an optional upload, or None when nothing was attached"""
    if attached_file is None or not attached_file.filename:
        return None
    content = await attached_file.read()
    attachment_text = extract_attachment_text(attached_file.filename, content)
    logger.info(
        f"Attachment {attached_file.filename}: {len(content)} bytes, "
        f"{calculate_file_size_mb(attachment_text)} MB of text extracted"
    )
    return attachment_text


def create_app(controller: Optional[BulkJobController] = None) -> FastAPI:
    """
    Build the API application

    Args:
        controller: Pre-built controller; when omitted one is built from the
            environment at startup
    """
    app = FastAPI(
        title="Bulk Outreach Generator",
        description="Generate personalized outreach email drafts for large prospect lists in resumable chunks",
        version=__version__,
        docs_url="/docs",
        redoc_url="/redoc",
        lifespan=lifespan
    )
    app.state.controller = controller

    # Add CORS middleware to handle cross-origin requests
    app.add_middleware(
        CORSMiddleware,
        allow_origins=os.getenv("CORS_ORIGINS", "*").split(","),
        allow_credentials=True,
        allow_methods=["*"],
        allow_headers=["*"],
    )
    app.add_exception_handler(BulkJobError, bulk_job_error_handler)

    register_routes(app)
    return app


def register_routes(app: FastAPI):

    @app.get("/")
    async def root():
        """Root endpoint with basic information"""
        return {
            "message": "Bulk Outreach Generator API",
            "version": __version__,
            "endpoints": {
                "health": "/health",
                "docs": "/docs",
                "styles": "/styles",
                "generate": "/generate",
                "start": "/bulk/start",
                "process": "/bulk/process",
                "status": "/bulk/status",
                "download": "/bulk/download",
                "regenerate": "/bulk/regenerate",
                "cancel": "/bulk/cancel",
                "jobs": "/bulk/jobs"
            },
            "note": "Call /bulk/process repeatedly until isComplete is true"
        }

    @app.get("/health")
    async def health_check(controller: BulkJobController = Depends(get_controller)):
        """Health check endpoint to verify service is running"""
        db_ok, db_error = controller.store.db_manager.test_connection()
        validate_ai = getattr(controller.generator, "validate_configuration", None)
        if validate_ai is not None:
            ai_valid, ai_error = validate_ai()
            ai_status = "configured" if ai_valid else f"not configured: {ai_error}"
        else:
            ai_status = "custom"

        return {
            "status": "healthy" if db_ok else "degraded",
            "version": __version__,
            "config": controller.config.as_dict(),
            "capabilities": {
                "database": "connected" if db_ok else f"error: {db_error}",
                "ai_generation": ai_status
            }
        }

    @app.get("/styles")
    async def get_available_styles():
        """Get list of available writing styles"""
        styles = get_styles_summary()
        return {
            "styles": styles,
            "default_style": DEFAULT_STYLE_SLUG,
            "total_styles": len(styles)
        }

    @app.post("/generate")
    async def generate_for_prospect(
        target_url: str = Form(""),
        target_first_name: str = Form(""),
        target_last_name: str = Form(""),
        target_company: str = Form(""),
        target_job_title: str = Form(""),
        target_linkedin_url: str = Form(""),
        sender_url: str = Form(""),
        what_we_do: str = Form(""),
        intent: str = Form(""),
        style_slug: str = Form(""),
        attached_file: Optional[UploadFile] = File(None),
        controller: BulkJobController = Depends(get_controller)
    ):
        """Generate three drafts for one prospect immediately; no job is stored"""
        record = {
            "website": target_url,
            "first_name": target_first_name,
            "last_name": target_last_name,
            "company_name": target_company,
            "job_title": target_job_title,
            "linkedin_url": target_linkedin_url,
        }
        outcome = await controller.generate_single(
            record=record,
            sender_url=sender_url,
            what_we_do=what_we_do,
            intent=intent,
            style_slug=style_slug,
            attachment_text=await read_attachment(attached_file)
        )
        return {
            "emails": [{"subject": draft.subject, "body": draft.body} for draft in outcome.drafts],
            "warnings": outcome.warnings,
            "processingTimeSeconds": round(outcome.processing_time_seconds, 2)
        }

    @app.post("/bulk/start")
    async def start_bulk_job(
        prospects: str = Form(""),
        sender_url: str = Form(""),
        what_we_do: str = Form(""),
        intent: str = Form(""),
        style_slug: str = Form(""),
        attached_file: Optional[UploadFile] = File(None),
        controller: BulkJobController = Depends(get_controller)
    ):
        """
        Create a bulk job from a JSON array of prospect rows

        The sender site is researched once here; no rows are generated until
        /bulk/process is called.
        """
        if not prospects:
            raise ValidationError("Missing required fields: prospects")
        try:
            records = json.loads(prospects)
        except ValueError:
            raise ValidationError("Invalid prospects data")
        if not isinstance(records, list):
            raise ValidationError("Invalid prospects data")

        summary = await controller.create_job(
            records=records,
            sender_url=sender_url,
            what_we_do=what_we_do,
            intent=intent,
            style_slug=style_slug,
            attachment_text=await read_attachment(attached_file)
        )
        return {
            "jobId": summary.id,
            "status": summary.status,
            "totalProspects": summary.total_prospects
        }

    @app.post("/bulk/process")
    async def process_bulk_chunk(body: JobRequest, controller: BulkJobController = Depends(get_controller)):
        """Process the next chunk of pending rows for a job"""
        result = await controller.process_next_chunk(body.job_id)
        return result.to_dict()

    @app.get("/bulk/status")
    async def get_bulk_status(
        job_id: str = Query(..., alias="jobId"),
        controller: BulkJobController = Depends(get_controller)
    ):
        """Job counters and timestamps without row data"""
        return controller.get_status(job_id).to_dict()

    @app.get("/bulk/download")
    async def download_bulk_results(
        job_id: str = Query(..., alias="jobId"),
        controller: BulkJobController = Depends(get_controller)
    ):
        """Download the job's rows and generated emails as CSV, at any status"""
        csv_content = controller.export_results(job_id)

        # Create streaming response
        def iter_csv():
            yield csv_content

        return StreamingResponse(
            iter_csv(),
            media_type="text/csv; charset=utf-8",
            headers={
                "Content-Disposition": f"attachment; filename=bulk-outreach-{job_id[:8]}.csv",
                "X-Job-ID": job_id,
                "Cache-Control": "no-cache, no-store, must-revalidate"
            }
        )

    @app.post("/bulk/regenerate")
    async def regenerate_bulk_job(body: RegenerateRequest, controller: BulkJobController = Depends(get_controller)):
        """Reset every row so the job can be processed again in another style"""
        return {"job": controller.reset_job(body.job_id, body.style_slug).to_dict()}

    @app.post("/bulk/cancel")
    async def cancel_bulk_job(body: JobRequest, controller: BulkJobController = Depends(get_controller)):
        return {"job": controller.cancel_job(body.job_id).to_dict()}

    @app.get("/bulk/jobs")
    async def list_bulk_jobs(
        limit: int = Query(50, ge=1, le=500),
        status: Optional[str] = Query(None),
        controller: BulkJobController = Depends(get_controller)
    ):
        """Most recent jobs first"""
        jobs = controller.list_jobs(limit=limit, status=status)
        return {"jobs": [job.to_dict() for job in jobs], "count": len(jobs)}


app = create_app()


# Production runner
if __name__ == "__main__":
    import uvicorn

    # Configuration from environment variables
    host = os.getenv("HOST", "0.0.0.0")
    port = int(os.getenv("PORT", "8000"))
    workers = int(os.getenv("WORKERS", "1"))
    reload = os.getenv("RELOAD", "false").lower() == "true"

    print(f"Starting Bulk Outreach Generator on {host}:{port}")
    print(f"Workers: {workers}, Reload: {reload}")

    uvicorn.run(
        "bulk_outreach.main:app",
        host=host,
        port=port,
        workers=workers if not reload else 1,  # Can't use multiple workers with reload
        reload=reload,
        access_log=True,
        log_level="info"
    )
