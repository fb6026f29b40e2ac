from pydantic import BaseModel


class Pagination(BaseModel):
    total: int
    pages: int
    current_page: int
    per_page: int


class MessageResponse(BaseModel):
    success: bool = True
    message: str
