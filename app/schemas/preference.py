from typing import Any, Dict, Optional

from pydantic import BaseModel, Field


class SavePreferencesRequest(BaseModel):
    user_id: Any = Field(None, alias="userId")
    preferences: Optional[Dict[str, Any]] = None

    class Config:
        populate_by_name = True
        json_schema_extra = {
            "example": {
                "userId": "asha@example.com",
                "preferences": {
                    "propertyLocation": "Pune",
                    "rent": 12000,
                    "roommateFoodPref": "Vegetarian",
                    "roommateSmokesOk": "No",
                    "cleanliness": "Neat",
                },
            }
        }
