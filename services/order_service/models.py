from sqlalchemy import Column, DateTime, Integer, JSON, String, func
from shared.config.database import Base

class CustomerOrder(Base):
    __tablename__ = "customer_orders"

    # The formatted order number is the key; a second insert for it must fail
    order_number = Column(String(64), primary_key=True)
    customer_id = Column(Integer, nullable=False, index=True)
    document = Column(JSON, nullable=False) # OrderRecord.to_document()
    created_at = Column(DateTime(timezone=True), server_default=func.now())
