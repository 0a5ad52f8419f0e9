"""排程工作：列出、查詢、手動觸發、啟用/停用。"""
from typing import List, Union

from fastapi import APIRouter, Depends

from agentcare import schemas
from agentcare.auth import require_permission
from agentcare.errors import NotFoundError
from agentcare.services.scheduler import scheduler_service

router = APIRouter(prefix="/api/v1/scheduler", tags=["scheduler"])

READ = Depends(require_permission("scheduler:read"))
RUN = Depends(require_permission("scheduler:run"))


@router.get("/jobs", response_model=schemas.ApiResponse[List[schemas.JobRead]], dependencies=[READ])
async def list_jobs():
    return schemas.ok([schemas.JobRead.model_validate(j) for j in scheduler_service.list_jobs()])


@router.get("/jobs/{name}", response_model=schemas.ApiResponse[schemas.JobRead], dependencies=[READ])
async def get_job(name: str):
    status = scheduler_service.get_job_status(name)
    if status is None:
        raise NotFoundError(f"Job '{name}' not found")
    return schemas.ok(schemas.JobRead.model_validate(status))


JOB_RESULT = Union[schemas.ZoneHeadNotificationResult, schemas.ProcessedNotificationsResult]


@router.post("/jobs/{name}/trigger", response_model=schemas.ApiResponse[JOB_RESULT], dependencies=[RUN])
async def trigger_job(name: str):
    """直接執行一次，回傳該工作的結果（例如 sent / failed 計數）"""
    result = await scheduler_service.trigger_job(name)
    if "details" in result:
        return schemas.ok(schemas.ZoneHeadNotificationResult.model_validate(result))
    return schemas.ok(schemas.ProcessedNotificationsResult.model_validate(result))


@router.post("/jobs/{name}/stop", response_model=schemas.ApiResponse[schemas.JobRead], dependencies=[RUN])
async def stop_job(name: str):
    scheduler_service.stop_job(name)
    return schemas.ok(schemas.JobRead.model_validate(scheduler_service.get_job_status(name)))


@router.post("/jobs/{name}/start", response_model=schemas.ApiResponse[schemas.JobRead], dependencies=[RUN])
async def start_job(name: str):
    scheduler_service.start_job(name)
    return schemas.ok(schemas.JobRead.model_validate(scheduler_service.get_job_status(name)))
