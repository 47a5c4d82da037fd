from __future__ import annotations
from datetime import datetime, timezone
from sqlalchemy import Column, String, DateTime, Integer, Text
from .db import Base


def utcnow() -> datetime:
	# Naive UTC, matching what the DateTime column stores
	return datetime.now(timezone.utc).replace(tzinfo=None)


class ListeningActivity(Base):
	__tablename__ = "listening_activities"
	id = Column(String(64), primary_key=True)
	username = Column(String(128), nullable=False, index=True)
	# Shared activity log; this engine only ever writes "listening"
	activity_type = Column(String(32), default="listening", nullable=False, index=True)
	exercise_title = Column(String(256), nullable=False)
	level = Column(String(8), nullable=False)
	assignment_id = Column(String(64), nullable=True)
	percent = Column(Integer, default=0, nullable=False)
	correct_count = Column(Integer, default=0, nullable=False)
	total = Column(Integer, default=0, nullable=False)
	questions_json = Column(Text, nullable=False)  # JSON list snapshot
	answers_json = Column(Text, nullable=False)  # JSON object snapshot
	analysis_json = Column(Text, nullable=True)
	created_at = Column(DateTime, default=utcnow, nullable=False)
