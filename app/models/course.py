# ------------------------------------------
# SQLAlchemy Course model definition
# Minimal course record consumed by the quiz catalog
# - Existence lookup for quiz creation
# - Ordered modules stored as JSON [{id, title}]
# - Instructor id used by the quiz list filter
# ------------------------------------------

from sqlalchemy import Column, String, DateTime, JSON
from sqlalchemy.orm import relationship
from datetime import datetime, timezone
import uuid
from app.db.database import Base

class Course(Base):
    __tablename__ = "courses"

    id = Column(String, primary_key=True, default=lambda: str(uuid.uuid4()), index=True)
    title = Column(String, nullable=False)
    code = Column(String, nullable=True)
    instructor_id = Column(String, nullable=True, index=True)
    modules = Column(JSON, default=list)
    created_at = Column(DateTime, default=lambda: datetime.now(timezone.utc).replace(tzinfo=None))

    quizzes = relationship("Quiz", back_populates="course")

    def find_module(self, module_id: str):
        for module in self.modules or []:
            if str(module.get("id")) == str(module_id):
                return module
        return None
