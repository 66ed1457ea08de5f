from typing import Optional

from pydantic import BaseModel


class CreateUserRequest(BaseModel):
    name: Optional[str] = None
    email: Optional[str] = None
    password: Optional[str] = None
    phone: Optional[str] = None
    aadhar_no: Optional[str] = None
    aadhar_image_url: Optional[str] = None
    user_type: Optional[str] = None

    class Config:
        json_schema_extra = {
            "example": {"name": "Test Resident", "email": "resident@example.com", "aadhar_no": "123456789012"}
        }
