"""FastAPI application for image generation, editing and suggestions."""
from dotenv import load_dotenv

# Load environment variables FIRST
load_dotenv()

from typing import List, Optional

from fastapi import Depends, FastAPI, File, HTTPException, Request, UploadFile
from fastapi.middleware.cors import CORSMiddleware
from fastapi.responses import JSONResponse, Response
from pydantic import BaseModel

from .. import __version__, config
from ..agent.orchestrator import Orchestrator
from ..agent.runtime import get_orchestrator
from ..errors import (
    FileError,
    OperationInProgressError,
    ProviderError,
    ProviderRateLimitError,
    ValidationError,
    VisionaryError,
)
from ..models import OrchestratorState

# -------------------------------------------------------------------
# FASTAPI APP
# -------------------------------------------------------------------
app = FastAPI(
    title="Visionary Image API",
    description="Generate, edit and refine images with Gemini",
    version=__version__,
)

app.add_middleware(
    CORSMiddleware,
    allow_origins=["*"],
    allow_credentials=True,
    allow_methods=["*"],
    allow_headers=["*"],
)


# -------------------------------------------------------------------
# SCHEMAS
# -------------------------------------------------------------------
class GenerateRequest(BaseModel):
    prompt: str


class EditRequest(BaseModel):
    edit_prompt: Optional[str] = None


class EditPromptRequest(BaseModel):
    edit_prompt: str


class OperationResponse(BaseModel):
    success: bool
    message: str
    state: OrchestratorState


class HistoryResponse(BaseModel):
    success: bool
    count: int
    images: List[str]


# -------------------------------------------------------------------
# ERRORS
# -------------------------------------------------------------------
def status_for(error: VisionaryError) -> int:
    """Map an application error to an HTTP status code."""
    if isinstance(error, OperationInProgressError):
        return 409
    if isinstance(error, (ValidationError, FileError)):
        return 400
    if isinstance(error, ProviderRateLimitError):
        return 429
    if isinstance(error, ProviderError):
        return 502
    return 500


@app.exception_handler(VisionaryError)
async def visionary_error_handler(request: Request, exc: VisionaryError):
    return JSONResponse(
        status_code=status_for(exc),
        content={"success": False, "title": exc.title, "detail": exc.message},
    )


def respond(orchestrator: Orchestrator, message: str) -> OperationResponse:
    return OperationResponse(success=True, message=message, state=orchestrator.snapshot())


# -------------------------------------------------------------------
# ROUTES
# -------------------------------------------------------------------
@app.get("/")
async def root():
    """Root endpoint with API information."""
    return {
        "service": "Visionary Image API",
        "architecture": "FastAPI → Orchestrator → Gemini",
        "version": __version__,
        "endpoints": {
            "generate": "POST /api/generate",
            "edit": "POST /api/edit",
            "suggest": "POST /api/suggest",
            "apply_suggestion": "POST /api/suggestions/{tier}/{index}/apply",
            "regenerate": "POST /api/regenerate",
            "edit_prompt": "PUT /api/edit-prompt",
            "undo": "POST /api/undo",
            "reset": "POST /api/reset",
            "upload": "POST /api/upload",
            "state": "GET /api/state",
            "image": "GET /api/image",
            "history": "GET /api/history",
            "load_history": "POST /api/history/{index}/load",
            "clear_history": "DELETE /api/history",
            "health": "GET /api/health"
        }
    }


@app.get("/api/health")
async def health():
    """Health check endpoint."""
    return {"status": "healthy", "service": "visionary-image-api"}


@app.get("/api/state", response_model=OrchestratorState)
async def state(orchestrator: Orchestrator = Depends(get_orchestrator)):
    return orchestrator.snapshot()


@app.post("/api/generate", response_model=OperationResponse)
async def generate_image(request: GenerateRequest, orchestrator: Orchestrator = Depends(get_orchestrator)):
    """Generate a new image; prompt refinements arrive in a later /api/state."""
    await orchestrator.generate(request.prompt)
    return respond(orchestrator, "Image generated successfully")


@app.post("/api/edit", response_model=OperationResponse)
async def edit_image(request: EditRequest, orchestrator: Orchestrator = Depends(get_orchestrator)):
    """Edit the current image."""
    await orchestrator.edit(request.edit_prompt)
    return respond(orchestrator, "Image edited successfully")


@app.post("/api/suggest", response_model=OperationResponse)
async def suggest_edits(orchestrator: Orchestrator = Depends(get_orchestrator)):
    """Analyse the current image for edit suggestions."""
    await orchestrator.suggest()
    return respond(orchestrator, "Suggestions updated")


@app.post("/api/suggestions/{tier}/{index}/apply", response_model=OperationResponse)
async def apply_suggestion(tier: str, index: int, orchestrator: Orchestrator = Depends(get_orchestrator)):
    """Generate from a prompt refinement or apply an edit suggestion."""
    await orchestrator.apply_suggestion(tier, index)
    return respond(orchestrator, f"Applied {tier} suggestion {index}")


@app.post("/api/regenerate", response_model=OperationResponse)
async def regenerate(orchestrator: Orchestrator = Depends(get_orchestrator)):
    """Generate again from the current prompt."""
    await orchestrator.regenerate()
    return respond(orchestrator, "Image regenerated successfully")


@app.put("/api/edit-prompt", response_model=OperationResponse)
async def set_edit_prompt(request: EditPromptRequest, orchestrator: Orchestrator = Depends(get_orchestrator)):
    orchestrator.set_edit_prompt(request.edit_prompt)
    return respond(orchestrator, "Edit prompt saved")


@app.post("/api/undo", response_model=OperationResponse)
async def undo(orchestrator: Orchestrator = Depends(get_orchestrator)):
    if not orchestrator.undo():
        return OperationResponse(success=False, message="Nothing to undo", state=orchestrator.snapshot())
    return respond(orchestrator, "Reverted to the previous image state")


@app.post("/api/reset", response_model=OperationResponse)
async def reset(orchestrator: Orchestrator = Depends(get_orchestrator)):
    orchestrator.reset()
    return respond(orchestrator, "Workspace cleared")


@app.post("/api/upload", response_model=OperationResponse)
async def upload_image(file: UploadFile = File(...), orchestrator: Orchestrator = Depends(get_orchestrator)):
    """Upload an image and analyse it for suggestions."""
    content = await file.read()
    await orchestrator.upload(content, file.content_type)
    return respond(orchestrator, f"File uploaded successfully: {file.filename}")


@app.get("/api/image")
async def get_image(orchestrator: Orchestrator = Depends(get_orchestrator)):
    """Download the current image."""
    image = orchestrator.image
    if image is None:
        raise HTTPException(status_code=404, detail="No image loaded")
    filename = orchestrator.download_filename()
    return Response(
        content=image.data,
        media_type=image.mime_type,
        headers={"Content-Disposition": f'attachment; filename="{filename}"'},
    )


@app.get("/api/history", response_model=HistoryResponse)
async def list_history(orchestrator: Orchestrator = Depends(get_orchestrator)):
    """List history thumbnails, most recent first."""
    images = orchestrator.history.list()
    return HistoryResponse(success=True, count=len(images), images=images)


@app.post("/api/history/{index}/load", response_model=OperationResponse)
async def load_history(index: int, orchestrator: Orchestrator = Depends(get_orchestrator)):
    await orchestrator.load_history(index)
    return respond(orchestrator, "Image loaded from history")


@app.delete("/api/history", response_model=HistoryResponse)
async def clear_history(orchestrator: Orchestrator = Depends(get_orchestrator)):
    orchestrator.history.clear()
    return HistoryResponse(success=True, count=0, images=[])


# -------------------------------------------------------------------
# RUN SERVER
# -------------------------------------------------------------------
if __name__ == "__main__":
    import uvicorn
    config.configure_logging()
    uvicorn.run(app, host="0.0.0.0", port=8000)
