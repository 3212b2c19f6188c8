"""
Base schemas with standardized field types for consistent API responses.
"""
from decimal import Decimal
from typing import Any, Generic, List, TypeVar

from pydantic import BaseModel, ConfigDict, Field
from pydantic_core import core_schema

T = TypeVar("T")


class StandardizedModel(BaseModel):
    """Base model for responses built from ORM rows."""

    model_config = ConfigDict(use_enum_values=True, populate_by_name=True, from_attributes=True)


class Money(Decimal):
    """Two-decimal currency amount that serializes as a float."""

    @classmethod
    def __get_pydantic_core_schema__(cls, source_type: Any, handler: Any) -> core_schema.CoreSchema:
        def validate_money(value: Any) -> Decimal:
            if isinstance(value, Decimal):
                return value
            if isinstance(value, (int, float, str)):
                return Decimal(str(value))
            raise ValueError(f"Cannot convert {type(value)} to Money")

        return core_schema.no_info_after_validator_function(
            validate_money,
            core_schema.union_schema(
                [
                    core_schema.is_instance_schema(Decimal),
                    core_schema.int_schema(),
                    core_schema.float_schema(),
                    core_schema.str_schema(),
                ]
            ),
            serialization=core_schema.plain_serializer_function_ser_schema(
                float,
                info_arg=False,
                return_schema=core_schema.float_schema(),
            ),
        )


class PaginatedResponse(BaseModel, Generic[T]):
    """Standard paginated envelope for list endpoints."""

    data: List[T] = Field(description="Items on this page")
    total: int = Field(description="Total number of matching items")
    page: int = Field(default=1, ge=1)
    limit: int = Field(default=10, ge=1, le=100)
    has_next: bool = Field(description="Whether there's a next page")
    has_prev: bool = Field(description="Whether there's a previous page")
