from typing import List

from pydantic import BaseModel


class ExecuteRequest(BaseModel):
    code: str = ""
    language: str = ""


class ExecuteResponse(BaseModel):
    output: List[str]
    success: bool
