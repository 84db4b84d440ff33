"""Health endpoint"""
from fastapi import APIRouter

router = APIRouter()

SERVICE_NAME = "shelfprice-api"
SERVICE_VERSION = "1.0.0"


@router.get("/health")
async def health():
    return {"status": "ok", "service": SERVICE_NAME, "version": SERVICE_VERSION}
