"""
Analysis run record model.
"""
from sqlalchemy import Column, Integer, String, Float, DateTime, Text, JSON
from datetime import datetime
from fatigue.db.database import Base


class AnalysisRun(Base):
    """
    Persisted outcome of a fatigue run.

    Attributes:
        id: Primary key
        name: Run name
        config_path: Configuration file the run was started from
        status: completed, partial or failed
        governing_node: Node with the largest damage
        total_damage: Damage of the governing node
        life: Life of the governing node (None without damage)
        result: Full result record
        error: Error message of a run that raised
        created_at: Creation timestamp
    """
    __tablename__ = "analysis_runs"

    id = Column(Integer, primary_key=True, index=True)
    name = Column(String(255), nullable=False)
    config_path = Column(String(1024), nullable=False)
    status = Column(String(20), nullable=False, default="completed")
    governing_node = Column(Integer, nullable=True)
    total_damage = Column(Float, nullable=True)
    life = Column(Float, nullable=True)
    result = Column(JSON, nullable=True)
    error = Column(Text, nullable=True)

    created_at = Column(DateTime, default=datetime.utcnow, nullable=False)

    def __repr__(self) -> str:
        return f"<AnalysisRun(id={self.id}, name='{self.name}', status='{self.status}')>"
