from fastapi import APIRouter, Depends

from coderoom.api.deps import get_current_user, get_execution_gateway
from coderoom.models import User
from coderoom.schemas.execution import ExecuteRequest, ExecuteResponse
from coderoom.services.execution_gateway import ExecutionGateway

router = APIRouter()


@router.post("/execute", response_model=ExecuteResponse)
async def execute_code(
    payload: ExecuteRequest,
    current_user: User = Depends(get_current_user),
    gateway: ExecutionGateway = Depends(get_execution_gateway),
):
    """Run code on the external runner and return its display lines."""
    result = await gateway.execute(payload.code, payload.language)
    return ExecuteResponse(output=result.output_lines, success=result.success)
