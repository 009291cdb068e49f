from datetime import datetime
from typing import List, Optional

from pydantic import BaseModel, Field


class TenantProfileRecord(BaseModel):
    tenant_id: str
    business_types: List[str] = Field(description="Ordered business type selection")
    primary_business_type: str
    cache_generation: int
    created_at: Optional[datetime] = None
    updated_at: Optional[datetime] = None

    @classmethod
    def from_row(cls, row) -> "TenantProfileRecord":
        return cls(
            tenant_id=row.tenant_id,
            business_types=list(row.business_types or []),
            primary_business_type=row.primary_business_type,
            cache_generation=row.cache_generation,
            created_at=row.created_at,
            updated_at=row.updated_at,
        )
