"""
質押紀錄服務

只新增不修改；實際的代幣轉移由外部流程處理
"""
from typing import List
import logging

from sqlalchemy.orm import Session

from models import StakingRecord
from database import transactional, with_store_retry

logger = logging.getLogger(__name__)


@with_store_retry
@transactional
def add_staking_record(db: Session, wallet_address: str, amount: float) -> StakingRecord:
    record = StakingRecord(wallet_address=wallet_address, amount=amount)
    db.add(record)
    db.flush()

    logger.info(f"Staking record for {wallet_address}: {amount}")
    return record


def staking_history(db: Session, wallet_address: str) -> List[StakingRecord]:
    """使用者的質押紀錄，最新的在前"""
    return db.query(StakingRecord).filter(
        StakingRecord.wallet_address == wallet_address
    ).order_by(StakingRecord.timestamp.desc(), StakingRecord.id.desc()).all()
