"""報修單：建立（自動派工）、查詢、狀態更新、手動指派、取消、統計。"""
from typing import List, Optional

from fastapi import APIRouter, Depends, Query
from sqlalchemy.ext.asyncio import AsyncSession

from agentcare import schemas
from agentcare.auth import Principal, require_permission
from agentcare.database import get_db
from agentcare.services import service_requests as sr_service

router = APIRouter(prefix="/api/v1/service-requests", tags=["service-requests"])


@router.get("", response_model=schemas.ApiResponse[List[schemas.ServiceRequestRead]],
            dependencies=[Depends(require_permission("service_requests:read"))])
async def list_service_requests(
    page: int = Query(1, ge=1),
    limit: int = Query(20, ge=1, le=100),
    q: Optional[str] = Query(None, description="單號、標題、描述搜尋"),
    status: Optional[schemas.ServiceRequestStatus] = Query(None),
    priority: Optional[schemas.Priority] = Query(None),
    customer_id: Optional[int] = Query(None, alias="customerId"),
    assigned_to_id: Optional[int] = Query(None, alias="assignedToId"),
    zone_id: Optional[int] = Query(None, alias="zoneId"),
    db: AsyncSession = Depends(get_db),
):
    items, total = await sr_service.list_service_requests(
        db, page=page, limit=limit, q=q, status=status, priority=priority,
        customer_id=customer_id, assigned_to_id=assigned_to_id, zone_id=zone_id,
    )
    return schemas.ok([schemas.ServiceRequestRead.model_validate(x) for x in items], schemas.page_of(page, limit, total))


@router.get("/stats", response_model=schemas.ApiResponse[schemas.ServiceRequestStats],
            dependencies=[Depends(require_permission("service_requests:read"))])
async def service_request_stats(db: AsyncSession = Depends(get_db)):
    return schemas.ok(schemas.ServiceRequestStats.model_validate(await sr_service.get_service_request_stats(db)))


@router.post("", response_model=schemas.ApiResponse[schemas.ServiceRequestDetail], status_code=201)
async def create_service_request(
    data: schemas.ServiceRequestCreate,
    db: AsyncSession = Depends(get_db),
    principal: Principal = Depends(require_permission("service_requests:write")),
):
    sr = await sr_service.create_service_request(db, data, performed_by=principal.subject)
    sr = await sr_service.get_service_request(db, sr.id, load_timeline=True)
    return schemas.ok(schemas.ServiceRequestDetail.model_validate(sr))


@router.get("/{request_id}", response_model=schemas.ApiResponse[schemas.ServiceRequestDetail],
            dependencies=[Depends(require_permission("service_requests:read"))])
async def get_service_request(request_id: int, db: AsyncSession = Depends(get_db)):
    sr = await sr_service.get_service_request(db, request_id, load_timeline=True)
    return schemas.ok(schemas.ServiceRequestDetail.model_validate(sr))


@router.patch("/{request_id}", response_model=schemas.ApiResponse[schemas.ServiceRequestDetail])
async def update_service_request(
    request_id: int,
    data: schemas.ServiceRequestUpdate,
    db: AsyncSession = Depends(get_db),
    principal: Principal = Depends(require_permission("service_requests:write")),
):
    await sr_service.update_service_request(db, request_id, data, performed_by=principal.subject)
    sr = await sr_service.get_service_request(db, request_id, load_timeline=True)
    return schemas.ok(schemas.ServiceRequestDetail.model_validate(sr))


@router.post("/{request_id}/assign", response_model=schemas.ApiResponse[schemas.ServiceRequestDetail])
async def assign_service_request(
    request_id: int,
    data: schemas.ServiceRequestAssign,
    db: AsyncSession = Depends(get_db),
    principal: Principal = Depends(require_permission("service_requests:assign")),
):
    await sr_service.assign_service_request(db, request_id, data.employee_id, principal.subject, data.notes)
    sr = await sr_service.get_service_request(db, request_id, load_timeline=True)
    return schemas.ok(schemas.ServiceRequestDetail.model_validate(sr))


@router.post("/{request_id}/cancel", response_model=schemas.ApiResponse[schemas.ServiceRequestDetail])
async def cancel_service_request(
    request_id: int,
    data: Optional[schemas.ServiceRequestCancel] = None,
    db: AsyncSession = Depends(get_db),
    principal: Principal = Depends(require_permission("service_requests:delete")),
):
    reason = data.reason if data else None
    await sr_service.cancel_service_request(db, request_id, principal.subject, reason)
    sr = await sr_service.get_service_request(db, request_id, load_timeline=True)
    return schemas.ok(schemas.ServiceRequestDetail.model_validate(sr))
