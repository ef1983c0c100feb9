"""
Degree Type Routes - public reference data for registration forms and filters.

GET /degree - List degree types
"""

from typing import List

from fastapi import APIRouter, Depends

from ku_connect.db.session import execute_raw_sql
from ku_connect.middleware import RateLimit, RequestContext, guard
from ku_connect.middleware import policies
from ku_connect.schemas.schemas import DegreeTypeResponse

router = APIRouter(prefix="/degree", tags=["Reference Data"])


@router.get("", response_model=List[DegreeTypeResponse])
async def list_degree_types(ctx: RequestContext = Depends(guard(RateLimit(policies.GENERAL)))):
    rows = execute_raw_sql("SELECT id, name FROM degree_types ORDER BY name")
    return [DegreeTypeResponse(**r) for r in rows]
