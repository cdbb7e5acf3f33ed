"""
Health check endpoint
"""
from fastapi import APIRouter
from fastapi import Depends
from sqlalchemy import text
from sqlalchemy.orm import Session

from app.db.session import get_db

router = APIRouter()

SERVICE_NAME = "leave-ledger-backend"


@router.get("/health")
async def health_check(db: Session = Depends(get_db)):
    """
    Health check endpoint

    Returns service status and whether the database answers a trivial query.
    """
    db.execute(text("SELECT 1"))
    return {
        "status": "ok",
        "service": SERVICE_NAME,
        "database": "ok",
    }
