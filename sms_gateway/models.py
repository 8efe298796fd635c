"""
SQLAlchemy ORM models for the message store tables.

The column names follow the platform SMS provider (`_id`, `date_sent`, ...);
attribute names are pythonic. For the channel records, see schemas.py.
"""

from sqlalchemy import Column, Integer, String, Text, BigInteger

from sms_gateway.storage import Base


class Sms(Base):
    """
    One SMS row.

    Table: sms
    `type` and `read` keep the store's own encoding
    (type 1 = received, 2 = sent; read 0 = unread, 1 = read).
    """
    __tablename__ = "sms"

    id = Column("_id", Integer, primary_key=True, autoincrement=True)
    thread_id = Column(Integer, nullable=False, index=True)
    address = Column(String, nullable=True, index=True)
    body = Column(Text, nullable=True)
    date = Column(BigInteger, nullable=False, default=0, index=True)  # epoch millis
    date_sent = Column(BigInteger, nullable=False, default=0)  # epoch millis
    type = Column(Integer, nullable=False, default=1)
    read = Column(Integer, nullable=False, default=0)


class Conversation(Base):
    """
    One conversation-thread listing row.

    Table: conversations
    `snippet` is maintained by the host and is not trusted for display.
    """
    __tablename__ = "conversations"

    id = Column("_id", Integer, primary_key=True, autoincrement=True)
    thread_id = Column(Integer, nullable=False, unique=True, index=True)
    date = Column(BigInteger, nullable=False, default=0, index=True)  # epoch millis
    snippet = Column(Text, nullable=True)
