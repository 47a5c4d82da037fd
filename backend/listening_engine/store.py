from __future__ import annotations
import json
import logging
import uuid
from typing import Callable, List, Optional

from sqlalchemy.orm import Session

from .errors import ActivityNotFound
from .models import ListeningActivity, utcnow
from .schemas import ActivityDraft, ActivityRecord, AIAnalysis, Question, Score

logger = logging.getLogger(__name__)


class ActivityStore:
	"""Append-only log of completed attempts. Rows are inserted once and only read after that."""

	def __init__(self, session_factory: Callable[[], Session]) -> None:
		self._session_factory = session_factory

	def save(self, draft: ActivityDraft) -> ActivityRecord:
		record = ActivityRecord(
			**draft.model_dump(),
			id=uuid.uuid4().hex,
			created_at=utcnow(),
		)
		row = ListeningActivity(
			id=record.id,
			username=record.username,
			activity_type=record.activity_type,
			exercise_title=record.exercise_title,
			level=record.level,
			assignment_id=record.assignment_id,
			percent=record.percent,
			correct_count=record.score.correct_count,
			total=record.score.total,
			questions_json=json.dumps([q.model_dump() for q in record.questions]),
			answers_json=json.dumps(record.answers),
			analysis_json=json.dumps(record.ai_analysis.model_dump()) if record.ai_analysis else None,
			created_at=record.created_at,
		)
		db = self._session_factory()
		try:
			db.add(row)
			db.commit()
		except Exception:
			db.rollback()
			raise
		finally:
			db.close()
		logger.info("Saved %s activity %s (%s, %d%%)", record.activity_type, record.id, record.exercise_title, record.percent)
		return record

	def get(self, activity_id: str) -> Optional[ActivityRecord]:
		db = self._session_factory()
		try:
			row = db.get(ListeningActivity, activity_id)
			return _to_record(row) if row else None
		finally:
			db.close()

	def require(self, activity_id: str, username: Optional[str] = None) -> ActivityRecord:
		record = self.get(activity_id)
		if record is None or (username is not None and record.username != username):
			raise ActivityNotFound(f"Activity {activity_id} not found")
		return record

	def list_by_type(self, activity_type: str = "listening", username: Optional[str] = None) -> List[ActivityRecord]:
		db = self._session_factory()
		try:
			query = db.query(ListeningActivity).filter(ListeningActivity.activity_type == activity_type)
			if username is not None:
				query = query.filter(ListeningActivity.username == username)
			rows = query.order_by(ListeningActivity.created_at.desc()).all()
			return [_to_record(r) for r in rows]
		finally:
			db.close()


def _to_record(row: ListeningActivity) -> ActivityRecord:
	analysis = json.loads(row.analysis_json) if row.analysis_json else None
	return ActivityRecord(
		id=row.id,
		username=row.username,
		activity_type=row.activity_type,
		exercise_title=row.exercise_title,
		level=row.level,
		assignment_id=row.assignment_id,
		questions=[Question(**q) for q in json.loads(row.questions_json)],
		answers=json.loads(row.answers_json),
		score=Score(correct_count=row.correct_count, total=row.total),
		ai_analysis=AIAnalysis(**analysis) if analysis else None,
		created_at=row.created_at,
	)
