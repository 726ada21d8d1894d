# pos_api/models/clients.py

from sqlalchemy import Column, Integer, String, DateTime
from sqlalchemy.sql import func

from pos_api.database import Base


class Client(Base):
    __tablename__ = "clients"

    id = Column(Integer, primary_key=True, index=True)
    name = Column(String, nullable=False)

    # CPF / CNPJ
    document = Column(String, unique=True, nullable=True)
    email = Column(String, nullable=True)
    phone = Column(String, nullable=True)
    address = Column(String, nullable=True)

    created_at = Column(DateTime(timezone=True), server_default=func.now(), nullable=False)
