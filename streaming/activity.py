from __future__ import annotations

import logging

from sqlalchemy import delete, desc, select
from sqlalchemy.exc import IntegrityError, SQLAlchemyError
from sqlalchemy.orm import Session

from db.models import Episode, ViewHistory, ViewerAccount, ViewerFeedback, WebSeries

from .errors import InvalidInput, NotFound

logger = logging.getLogger(__name__)


def record_view(session: Session, *, account_id: int, episode_id: int) -> ViewHistory:
    view = ViewHistory(account_id=account_id, episode_id=episode_id)
    session.add(view)
    try:
        session.commit()
    except IntegrityError as exc:
        session.rollback()
        raise NotFound("Unknown account or episode") from exc
    return view


def submit_feedback(
    session: Session,
    *,
    account_id: int,
    webseries_id: int,
    rating: int,
    feedback_text: str | None,
) -> ViewerFeedback:
    if not 1 <= rating <= 5:
        raise InvalidInput("Rating must be between 1 and 5")
    feedback = ViewerFeedback(
        account_id=account_id,
        webseries_id=webseries_id,
        rating=rating,
        feedback_text=feedback_text,
    )
    session.add(feedback)
    try:
        session.commit()
    except IntegrityError as exc:
        session.rollback()
        raise NotFound("Unknown account or series") from exc
    return feedback


def list_history(session: Session, account_id: int) -> list[dict]:
    stmt = (
        select(ViewHistory, Episode, WebSeries.series_name)
        .join(Episode, ViewHistory.episode_id == Episode.episode_id)
        .join(WebSeries, Episode.webseries_id == WebSeries.webseries_id)
        .where(ViewHistory.account_id == account_id)
        .order_by(desc(ViewHistory.view_timestamp), desc(ViewHistory.view_id))
    )
    return [
        {
            "view_id": view.view_id,
            "account_id": view.account_id,
            "episode_id": episode.episode_id,
            "episode_number": episode.episode_number,
            "episode_title": episode.episode_title,
            "webseries_id": episode.webseries_id,
            "series_name": series_name,
            "view_timestamp": view.view_timestamp,
        }
        for view, episode, series_name in session.execute(stmt).all()
    ]


def delete_history_item(session: Session, view_id: int) -> None:
    view = session.get(ViewHistory, view_id)
    if view is None:
        raise NotFound("History item not found")
    session.delete(view)
    session.commit()


def clear_history(session: Session, account_id: int) -> int:
    if session.get(ViewerAccount, account_id) is None:
        raise NotFound("Viewer account not found")
    try:
        result = session.execute(delete(ViewHistory).where(ViewHistory.account_id == account_id))
        session.commit()
    except SQLAlchemyError:
        session.rollback()
        raise
    logger.info("cleared %d history item(s) for account %s", result.rowcount, account_id)
    return result.rowcount


def list_feedback(session: Session, webseries_id: int) -> list[dict]:
    stmt = (
        select(ViewerFeedback, ViewerAccount.viewer_first_name)
        .join(ViewerAccount, ViewerFeedback.account_id == ViewerAccount.account_id)
        .where(ViewerFeedback.webseries_id == webseries_id)
        .order_by(desc(ViewerFeedback.feedback_date), desc(ViewerFeedback.feedback_id))
    )
    return [
        {
            "feedback_id": feedback.feedback_id,
            "account_id": feedback.account_id,
            "viewer_first_name": first_name,
            "rating": feedback.rating,
            "feedback_text": feedback.feedback_text,
            "feedback_date": feedback.feedback_date,
        }
        for feedback, first_name in session.execute(stmt).all()
    ]
