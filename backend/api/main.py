"""
FastAPI backend for Trail Profile Lab.

This provides REST API endpoints for elevation-profile segmentation, GPX
analysis and streamed detect-and-fuse animation, enabling framework-agnostic
frontend development.
"""

from fastapi import FastAPI, UploadFile, File, Form, HTTPException
from fastapi.middleware.cors import CORSMiddleware
from fastapi.responses import StreamingResponse
from pydantic import BaseModel, Field
from typing import Dict, List, Optional, Any
import io
import json
import logging

from config.settings import (
    APP_NAME, APP_VERSION, APP_DESCRIPTION, LOGGING_CONFIG, SegmentationConfig, APIConfig
)

# Initialize logging
logging.basicConfig(**LOGGING_CONFIG)
logger = logging.getLogger(__name__)

# Create FastAPI app
app = FastAPI(
    title=f"{APP_NAME} API",
    description=APP_DESCRIPTION,
    version=APP_VERSION
)

# Add CORS middleware for frontend access
app.add_middleware(
    CORSMiddleware,
    allow_origins=APIConfig.CORS_ORIGINS,
    allow_credentials=True,
    allow_methods=["GET", "POST", "OPTIONS"],
    allow_headers=["*"],
)

# Import our services
from services.profile_analysis_service import (
    analyze_profile, analyze_gpx_file, stream_segmentation_events
)
from core.models.segment import ElevationPoint
from core.segmentation.factory import SegmentationFactory
from core.validation import (
    ValidationError, validate_elevation_points, validate_segmentation_params, validate_file_upload
)


# Pydantic models for API requests/responses
class ProfilePoint(BaseModel):
    distance: float  # km from start
    elevation: float  # meters


class SegmentationRequest(BaseModel):
    points: List[ProfilePoint]
    method: str = SegmentationConfig.DEFAULT_METHOD
    params: Dict[str, Any] = Field(default_factory=dict)
    steep_threshold: float = SegmentationConfig.STEEP_THRESHOLD


class StreamRequest(BaseModel):
    points: List[ProfilePoint]
    params: Dict[str, Any] = Field(default_factory=dict)


class ProfileSummary(BaseModel):
    point_count: int
    segment_count: int
    total_distance_km: float
    total_gain: float
    total_loss: float
    max_elevation: Optional[float]
    min_elevation: Optional[float]
    estimated_time_minutes: float
    estimated_time: str
    segment_counts: Dict[str, int]
    mean_r_squared: Optional[float]
    min_r_squared: Optional[float]


class SegmentationResponse(BaseModel):
    method: str
    params: Dict[str, Any]
    segments: List[Dict[str, Any]]
    macro_boundaries: List[int]
    frames: Optional[List[List[Dict[str, Any]]]] = None
    rows: List[Dict[str, Any]]
    summary: ProfileSummary
    steep_sections: List[Dict[str, Any]]
    metadata: Dict[str, Optional[str]] = Field(default_factory=dict)


def _to_elevation_points(points: List[ProfilePoint]) -> List[ElevationPoint]:
    """Convert request points and enforce the API size limit."""
    if len(points) > APIConfig.MAX_PROFILE_POINTS:
        raise HTTPException(
            status_code=413,
            detail=f"Profile too large: {len(points)} points (max {APIConfig.MAX_PROFILE_POINTS})"
        )
    return [ElevationPoint(distance=p.distance, elevation=p.elevation) for p in points]


@app.get("/")
async def root():
    """Root endpoint with API information."""
    return {
        "message": f"{APP_NAME} API",
        "version": APP_VERSION,
        "endpoints": {
            "POST /api/segment": "Segment an elevation profile",
            "POST /api/analyze-gpx": "Analyze a GPX file",
            "POST /api/segment/stream": "Stream detect-and-fuse segmentation as NDJSON",
            "GET /api/methods": "List segmentation methods",
            "GET /api/config": "Default parameters and UI ranges",
            "GET /api/health": "Health check endpoint"
        }
    }


@app.get("/api/health")
async def health_check():
    """Health check endpoint."""
    return {"status": "healthy", "service": "trail-profile-api"}


@app.get("/api/methods")
async def get_methods():
    """List available segmentation methods."""
    return {
        "default": SegmentationFactory.get_default_method(),
        "methods": SegmentationFactory.get_available_methods()
    }


@app.get("/api/config")
async def get_config():
    """Get default parameter values per method and UI ranges."""
    config = SegmentationConfig.as_dict()
    return {
        "default_method": config['default_method'],
        "defaults": {
            method: SegmentationFactory.get_default_params(method)
            for method in SegmentationFactory.get_available_methods()
        },
        "ranges": config['parameter_ranges'],
        "steep_threshold": config['steep_threshold'],
        "max_profile_points": APIConfig.MAX_PROFILE_POINTS
    }


@app.post("/api/segment", response_model=SegmentationResponse)
async def segment(request: SegmentationRequest):
    """
    Segment an elevation profile.

    Args:
        request: Points, method name, method parameters and steep threshold

    Returns:
        Segments, macro boundaries, display rows, summary and steep sections
    """
    points = _to_elevation_points(request.points)

    try:
        result = analyze_profile(
            points,
            method=request.method,
            params=request.params,
            steep_threshold=request.steep_threshold
        )
        return result.to_dict()

    except ValidationError as e:
        logger.warning(f"Rejected segmentation request: {e}")
        raise HTTPException(status_code=400, detail=str(e))
    except Exception as e:
        logger.error(f"Error segmenting profile: {str(e)}")
        raise HTTPException(status_code=500, detail=f"Error segmenting profile: {str(e)}")


@app.post("/api/analyze-gpx", response_model=SegmentationResponse)
async def analyze_gpx(
    file: UploadFile = File(...),
    method: str = SegmentationConfig.DEFAULT_METHOD,
    params: str = Form("{}"),
    steep_threshold: float = SegmentationConfig.STEEP_THRESHOLD
):
    """
    Analyze a GPX file.

    Args:
        file: GPX file to analyze
        method: Segmentation method name
        params: JSON object with method parameters (form field)
        steep_threshold: Gradient (percent) above which steep sections are flagged

    Returns:
        Segments, macro boundaries, display rows, summary and steep sections
    """
    try:
        validate_file_upload(file)

        content = await file.read()

        if len(content) > APIConfig.MAX_UPLOAD_SIZE:
            raise HTTPException(
                status_code=413,
                detail=f"File too large. Maximum size is {APIConfig.MAX_UPLOAD_SIZE / 1024 / 1024:.0f}MB, "
                       f"received {len(content) / 1024 / 1024:.1f}MB"
            )

        if not content.strip():
            raise HTTPException(status_code=400, detail="File appears to be empty")

        try:
            params_dict = json.loads(params) if params else {}
        except json.JSONDecodeError as e:
            raise HTTPException(status_code=400, detail=f"Invalid params JSON: {e}")
        if not isinstance(params_dict, dict):
            raise HTTPException(status_code=400, detail="params must be a JSON object")

        logger.info(f"Processing file: {file.filename}")
        result = analyze_gpx_file(io.BytesIO(content), method, params_dict, steep_threshold)

        if not result.metadata.get('name') and file.filename:
            result.metadata['name'] = file.filename.rsplit('.', 1)[0]

        return result.to_dict()

    except HTTPException:
        raise
    except ValidationError as e:
        logger.warning(f"Rejected GPX upload {file.filename}: {e}")
        raise HTTPException(status_code=400, detail=str(e))
    except Exception as e:
        logger.error(f"Error analyzing GPX file: {str(e)}")
        raise HTTPException(status_code=500, detail=f"Error analyzing GPX file: {str(e)}")


@app.post("/api/segment/stream")
async def segment_stream(request: StreamRequest):
    """
    Stream detect-and-fuse segmentation as newline-delimited JSON.

    Emits ``raw_segment`` events as phase 1 discovers them, then one ``frame``
    event per fusion step, then a final ``result`` event.
    """
    points = _to_elevation_points(request.points)

    try:
        validate_elevation_points(points)
        validate_segmentation_params(request.params)
    except ValidationError as e:
        logger.warning(f"Rejected stream request: {e}")
        raise HTTPException(status_code=400, detail=str(e))

    async def event_lines():
        async for event in stream_segmentation_events(points, request.params):
            yield json.dumps(event) + "\n"

    return StreamingResponse(event_lines(), media_type="application/x-ndjson")


if __name__ == "__main__":
    import uvicorn
    uvicorn.run(app, host=APIConfig.HOST, port=APIConfig.PORT)
