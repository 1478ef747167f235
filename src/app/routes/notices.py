import logging
from typing import List

from fastapi import APIRouter, Depends, HTTPException, Query
from sqlalchemy.orm import Session

from src.models.database import get_db
from src.models.notice import Notice
from src.models.schemas import NoticeCreate, NoticeUpdate, NoticeResponse
from src.utils.helpers import utcnow
from src.app.dependencies import Caller, caller_dependency, admin_dependency

logger = logging.getLogger(__name__)

router = APIRouter(tags=["notices"])

DEFAULT_FEED_SIZE = 5


def latest_published(db: Session, limit: int = DEFAULT_FEED_SIZE) -> List[Notice]:
    return db.query(Notice).filter(
        Notice.status == "published"
    ).order_by(Notice.published_at.desc()).limit(limit).all()


@router.get("/notices", response_model=List[NoticeResponse])
async def get_notice_feed(
    limit: int = Query(DEFAULT_FEED_SIZE, ge=1, le=50),
    db: Session = Depends(get_db),
    caller: Caller = caller_dependency
):
    """Latest published notices, newest first"""
    return latest_published(db, limit)


@router.get("/admin/notices", response_model=List[NoticeResponse])
async def list_notices(
    db: Session = Depends(get_db),
    admin: Caller = admin_dependency
):
    """All notices including drafts"""
    return db.query(Notice).order_by(Notice.published_at.desc()).all()


@router.post("/admin/notices", response_model=NoticeResponse, status_code=201)
async def create_notice(
    request: NoticeCreate,
    db: Session = Depends(get_db),
    admin: Caller = admin_dependency
):
    notice = Notice(
        title=request.title,
        content=request.content,
        is_important=request.is_important,
        status=request.status,
        published_at=utcnow(),
    )
    db.add(notice)
    db.commit()
    db.refresh(notice)
    logger.info("Notice %s created as %s", notice.id, notice.status)
    return notice


@router.put("/admin/notices/{notice_id}", response_model=NoticeResponse)
async def update_notice(
    notice_id: str,
    request: NoticeUpdate,
    db: Session = Depends(get_db),
    admin: Caller = admin_dependency
):
    notice = db.query(Notice).filter(Notice.id == notice_id).first()
    if not notice:
        raise HTTPException(status_code=404, detail="Notice not found")

    changes = request.model_dump(exclude_unset=True)
    if changes.get("status") == "published" and notice.status != "published":
        notice.published_at = utcnow()
    for field, value in changes.items():
        if value is None and field in ("title", "is_important", "status"):
            continue
        setattr(notice, field, value)

    db.commit()
    db.refresh(notice)
    return notice


@router.delete("/admin/notices/{notice_id}")
async def delete_notice(
    notice_id: str,
    db: Session = Depends(get_db),
    admin: Caller = admin_dependency
):
    notice = db.query(Notice).filter(Notice.id == notice_id).first()
    if not notice:
        raise HTTPException(status_code=404, detail="Notice not found")

    db.delete(notice)
    db.commit()
    return {"message": "Notice deleted successfully"}
