from sqlalchemy import Column, Integer, String

from quoteflow.database import Base


class QuoteForm(Base):
    __tablename__ = "quote_forms"

    id = Column(String, primary_key=True, index=True)
    account_id = Column(Integer, nullable=False, index=True)
    name = Column(String, nullable=False, default="Quote form")
