from datetime import datetime

from sqlalchemy import Column, Integer, String, Text, TIMESTAMP, ForeignKey
from sqlalchemy.orm import relationship
from app.core.database import Base


class Client(Base):
    __tablename__ = "clients"

    id = Column(Integer, primary_key=True, index=True)
    user_id = Column(Integer, ForeignKey("users.id"), index=True)

    name = Column(String)
    email = Column(String, nullable=True)
    company = Column(String, nullable=True)

    created_at = Column(TIMESTAMP, default=datetime.utcnow)


class Project(Base):
    __tablename__ = "projects"

    id = Column(Integer, primary_key=True, index=True)
    user_id = Column(Integer, ForeignKey("users.id"), index=True)
    client_id = Column(Integer, ForeignKey("clients.id"), nullable=True)

    name = Column(String)
    status = Column(String, default="ACTIVE")  # 'ACTIVE', 'ON_HOLD', 'COMPLETED', 'ARCHIVED'

    created_at = Column(TIMESTAMP, default=datetime.utcnow)
    updated_at = Column(TIMESTAMP, default=datetime.utcnow)

    tasks = relationship("Task", back_populates="project")


class Task(Base):
    __tablename__ = "tasks"

    id = Column(Integer, primary_key=True, index=True)
    user_id = Column(Integer, ForeignKey("users.id"), index=True)
    project_id = Column(Integer, ForeignKey("projects.id"), nullable=True)

    title = Column(String, nullable=False)
    description = Column(Text, default="")

    # Status Flow: 'TODO' -> 'IN_PROGRESS' -> 'DONE'
    status = Column(String, default="TODO")
    priority = Column(String, default="MEDIUM")

    due_date = Column(TIMESTAMP, nullable=True)
    created_at = Column(TIMESTAMP, default=datetime.utcnow)

    project = relationship("Project", back_populates="tasks")
