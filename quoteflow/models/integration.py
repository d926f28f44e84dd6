from sqlalchemy import JSON, Column, Integer, String, UniqueConstraint

from quoteflow.database import Base


class Integration(Base):
    __tablename__ = "integrations"

    __table_args__ = (
        UniqueConstraint("account_id", "integration_type", name="uq_integrations_account_type"),
    )

    id = Column(Integer, primary_key=True)

    account_id = Column(Integer, nullable=False, index=True)
    integration_type = Column(String, nullable=False)  # resend|openai|anthropic|google

    # {"apiKey": ..., "fromEmail": ...}
    config = Column(JSON, nullable=False, default=dict)
