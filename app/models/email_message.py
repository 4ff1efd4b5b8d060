from datetime import datetime

from sqlalchemy import Column, Integer, String, Text, TIMESTAMP
from app.core.database import Base

class EmailMessage(Base):
    __tablename__ = "email_messages"

    id = Column(Integer, primary_key=True, index=True)

    user_id = Column(Integer, index=True)
    automation_id = Column(Integer, index=True, nullable=True)

    email = Column(Text)
    to_name = Column(Text, nullable=True)
    subject = Column(Text)
    body = Column(Text)

    status = Column(String)  # 'sent', 'failed'
    provider = Column(String, default="zeptomail")
    error_message = Column(Text, nullable=True)

    sent_at = Column(TIMESTAMP, nullable=True)
    created_at = Column(TIMESTAMP, default=datetime.utcnow)
