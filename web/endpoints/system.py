"""System health and format endpoints."""

from fastapi import APIRouter

from formats import format_registry

router = APIRouter(prefix="/api")


@router.get("/health")
async def health_check():
    """Health check endpoint to verify API is running."""
    return {"isAlive": True}


@router.get("/formats")
async def get_formats():
    """Get available debate formats."""
    return {"formats": format_registry.get_format_descriptions()}
