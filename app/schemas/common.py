from typing import Any, Optional, List, Generic, TypeVar
from pydantic import BaseModel

T = TypeVar("T")


# Paginated response wrapper - used by all list endpoints
class PaginatedResponse(BaseModel, Generic[T]):
    data: List[T]
    total: int
    page: int
    limit: int
    total_pages: int


# Generic envelope for write endpoints that return a message alongside data
class MessageResponse(BaseModel):
    message: str
    data: Optional[Any] = None
