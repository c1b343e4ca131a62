from pydantic import BaseModel


class ErrorResponse(BaseModel):
    """에러 응답"""

    error: str
    code: str
