# app/schemas/connection_schema.py
from enum import Enum
from pydantic import BaseModel, Field
import uuid

class ConnectionAction(str, Enum):
    ACCEPT = "accept"
    REJECT = "reject"

class ConnectionCreate(BaseModel):
    receiver_id: uuid.UUID = Field(..., alias="receiverId")

class ConnectionUpdate(BaseModel):
    action: ConnectionAction
