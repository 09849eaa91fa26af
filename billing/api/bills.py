# billing/api/bills.py
from __future__ import annotations

from typing import Any, Annotated, Dict, List, Optional

from fastapi import APIRouter, Body, Depends, File, UploadFile
from starlette.concurrency import run_in_threadpool

from billing.ingestion.bulk_bills import BulkBillUpload
from billing.services import bills as bill_service
from billing.services.config import UPLOAD_MAX_BYTES
from billing.services.errors import PayloadTooLargeError, ValidationError
from billing.services.roles import require_user

router = APIRouter(prefix="/bills", tags=["Bills"])

CurrentUser = Annotated[Dict[str, Any], Depends(require_user)]


def _bill_id(value: int) -> int:
    if value <= 0:
        raise ValidationError("Invalid bill id")
    return value


@router.get("")
def get_bills(
    _user: CurrentUser,
    type: Optional[str] = None,
    agent_id: Optional[int] = None,
    client_id: Optional[int] = None,
) -> List[Dict[str, Any]]:
    return bill_service.list_bills(group_type=(type or "").strip() or None, agent_id=agent_id, client_id=client_id)


@router.post("", status_code=201)
def create_bill(_user: CurrentUser, payload: Dict[str, Any] = Body(...)) -> Dict[str, Any]:
    return bill_service.create_bill(payload)


@router.post("/bulk-upload", status_code=201)
async def bulk_upload(_user: CurrentUser, file: UploadFile = File(...)) -> Dict[str, Any]:
    """
    Upload a CSV / XLS / XLSX of bills. Either every row is inserted or none;
    a rejected upload lists every failing row with its errors.
    """
    content = await file.read()
    if len(content) > UPLOAD_MAX_BYTES:
        raise PayloadTooLargeError(f"File too large (max {UPLOAD_MAX_BYTES // (1024 * 1024)}MB)")
    if not content:
        raise ValidationError("Uploaded file is empty")
    return await run_in_threadpool(BulkBillUpload().process, content, file.filename)


@router.put("/{bill_id}")
def update_bill(bill_id: int, _user: CurrentUser, payload: Dict[str, Any] = Body(...)) -> Dict[str, Any]:
    return bill_service.update_bill(_bill_id(bill_id), payload)


@router.delete("/{bill_id}")
def delete_bill(bill_id: int, _user: CurrentUser) -> Dict[str, Any]:
    bill_service.delete_bill(_bill_id(bill_id))
    return {"message": "Bill deleted successfully"}
