"""
FitForge AI — Body Scan API (FastAPI)
"""

import logging
import os
from datetime import datetime
from typing import Any, Dict, List, Optional

from dotenv import load_dotenv
from fastapi import Depends, FastAPI, File, HTTPException, Request, UploadFile
from fastapi.concurrency import run_in_threadpool
from fastapi.middleware.cors import CORSMiddleware
from pydantic import BaseModel, Field
import uvicorn

load_dotenv()

from agents.body_analysis_agent import (
    BODY_SCAN_CONFIG,
    BodyAnalysisOrchestrator,
    create_body_analysis_orchestrator,
)
from agents.errors import BodyAnalysisError, ScanInputError
from tools.body_signature import describe_signature

logging.basicConfig(
    level=os.getenv("LOG_LEVEL", "INFO").upper(),
    format="%(asctime)s %(levelname)s %(name)s: %(message)s",
)
logger = logging.getLogger(__name__)


# =============================================================================
# PYDANTIC MODELS
# =============================================================================
class BodyAnalysisResponse(BaseModel):
    scanResult: Dict[str, Any]
    photoCount: int
    extractionStrategy: str
    timestamp: str = Field(default_factory=lambda: datetime.now().isoformat())


class CompareRequest(BaseModel):
    previousScan: Dict[str, Any]
    currentScan: Dict[str, Any]
    includeInsights: bool = True


class CompareResponse(BaseModel):
    bodyFatChange: float
    muscleMassChange: str
    measurementChanges: Dict[str, float]
    progressSummary: str
    recommendations: str
    timestamp: str = Field(default_factory=lambda: datetime.now().isoformat())


class HealthResponse(BaseModel):
    status: str
    system: str
    model: str
    maxPhotos: int
    timestamp: str = Field(default_factory=lambda: datetime.now().isoformat())


# =============================================================================
# APP SETUP
# =============================================================================
app = FastAPI(
    title="FitForge AI Body Scan API",
    version="3.0.0",
    description="Body composition analysis and Body Signature backend"
)

app.add_middleware(
    CORSMiddleware,
    allow_origins=["*"],
    allow_credentials=True,
    allow_methods=["*"],
    allow_headers=["*"],
)


def get_orchestrator(request: Request) -> BodyAnalysisOrchestrator:
    """One orchestrator per app, created on first use."""
    orchestrator: Optional[BodyAnalysisOrchestrator] = getattr(request.app.state, "orchestrator", None)
    if orchestrator is None:
        orchestrator = create_body_analysis_orchestrator()
        request.app.state.orchestrator = orchestrator
    return orchestrator


# =============================================================================
# ENDPOINTS
# =============================================================================
@app.get("/health", response_model=HealthResponse)
async def health():
    return HealthResponse(
        status="healthy",
        system="FitForge AI Body Scan",
        model=BODY_SCAN_CONFIG["model"],
        maxPhotos=BODY_SCAN_CONFIG["max_photos"],
    )


@app.post("/api/v1/body/analyze", response_model=BodyAnalysisResponse)
async def analyze_body(
    files: List[UploadFile] = File(...),
    orchestrator: BodyAnalysisOrchestrator = Depends(get_orchestrator),
):
    """Analyze body composition from 1-3 photos (front, side, back)."""
    if len(files) > orchestrator.max_photos:
        raise HTTPException(
            status_code=400,
            detail=f"Maximum {orchestrator.max_photos} photos allowed (front, side, back)",
        )

    images = [await upload.read() for upload in files]
    logger.info("🏋️ Analyzing %d body photo(s)", len(images))

    try:
        result = await run_in_threadpool(orchestrator.analyze, images)
    except ScanInputError as e:
        raise HTTPException(status_code=400, detail=e.user_message)
    except BodyAnalysisError as e:
        logger.error("Body analysis error: %s", e)
        raise HTTPException(status_code=502, detail=e.user_message)

    return BodyAnalysisResponse(
        scanResult=result.to_scan_result(),
        photoCount=result.photo_count,
        extractionStrategy=result.extraction_strategy,
    )


@app.post("/api/v1/body/compare", response_model=CompareResponse)
async def compare_body_scans(
    request: CompareRequest,
    orchestrator: BodyAnalysisOrchestrator = Depends(get_orchestrator),
):
    """Compare two body scans to track progress."""
    try:
        comparison = await run_in_threadpool(
            orchestrator.compare,
            request.previousScan,
            request.currentScan,
            request.includeInsights,
        )
    except BodyAnalysisError as e:
        logger.error("Scan comparison error: %s", e)
        raise HTTPException(status_code=502, detail="Failed to compare scans")

    return CompareResponse(**comparison.to_wire())


@app.get("/api/v1/body/signature/{unique_id}")
async def get_body_signature_info(unique_id: str):
    """Interpret a Body Signature unique id (BODYTYPE-BF%-HASH-ADONIS)."""
    try:
        return describe_signature(unique_id)
    except ValueError as e:
        raise HTTPException(status_code=400, detail=str(e))


if __name__ == "__main__":
    uvicorn.run(app, host="0.0.0.0", port=int(os.getenv("PORT", "8000")))
