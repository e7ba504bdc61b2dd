"""
Staking history API Endpoints
"""
from typing import List

from fastapi import APIRouter, Depends, HTTPException
from sqlalchemy.orm import Session
import logging

from database import get_db
from schemas import StakingRecordRequest, StakingRecordResponse
from core.exceptions import StoreUnavailable
from services.staking_service import add_staking_record, staking_history
from api.errors import api_error
from api.room_views import staking_record_response

router = APIRouter(prefix="/api/stake/history", tags=["staking"])
logger = logging.getLogger(__name__)


@router.post("/add", response_model=StakingRecordResponse)
def add_staking_data(record_data: StakingRecordRequest, db: Session = Depends(get_db)):
    try:
        record = add_staking_record(db, record_data.wallet_address, record_data.amount)
        return staking_record_response(record)

    except StoreUnavailable as e:
        raise api_error(e, 503)
    except Exception as e:
        logger.error(f"Failed to save staking data: {e}", exc_info=True)
        raise HTTPException(status_code=500, detail="Internal error")


@router.get("/{wallet_address}", response_model=List[StakingRecordResponse])
def get_staking_data(wallet_address: str, db: Session = Depends(get_db)):
    """質押紀錄，最新的在前"""
    return [staking_record_response(record) for record in staking_history(db, wallet_address)]
