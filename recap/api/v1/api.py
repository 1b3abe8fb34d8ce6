"""
API v1路由汇总
"""

from fastapi import APIRouter

from recap.api.v1.endpoints import processing, uploads

api_router = APIRouter()

api_router.include_router(processing.router, tags=["processing"])
api_router.include_router(uploads.router, prefix="/uploads", tags=["uploads"])
