from __future__ import annotations

from sqlalchemy import Column, ForeignKey, Index, Integer, String, Text
from sqlalchemy.orm import declarative_base

Base = declarative_base()


class Project(Base):
    __tablename__ = "projects"

    id = Column(String, primary_key=True)
    name = Column(String, nullable=False)
    created_at = Column(String, nullable=False)


class Script(Base):
    __tablename__ = "scripts"

    id = Column(String, primary_key=True)
    project_id = Column(String, ForeignKey("projects.id"), nullable=False)
    name = Column(String, nullable=False)
    description = Column(Text)
    created_at = Column(String, nullable=False)

    __table_args__ = (Index("idx_scripts_project", "project_id"),)


class Execution(Base):
    __tablename__ = "executions"

    id = Column(String, primary_key=True)
    project_id = Column(String, ForeignKey("projects.id"), nullable=False)
    script_id = Column(String, ForeignKey("scripts.id"), nullable=False)
    script_name = Column(String, nullable=False)
    user_id = Column(String, nullable=False, default="anonymous")
    status = Column(String, nullable=False)
    # ISO-8601 UTC strings, see runboard.state.execution_state.format_timestamp
    started_at = Column(String, nullable=False)
    completed_at = Column(String)
    duration_ms = Column(Integer)
    output = Column(Text)
    exit_code = Column(Integer)

    __table_args__ = (
        Index("idx_executions_project_started", "project_id", "started_at"),
        Index("idx_executions_status", "status"),
    )
