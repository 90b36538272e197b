from pydantic import BaseModel, ConfigDict, Field, StrictBool
from typing import List, Any, Literal


class RPCRequest(BaseModel):
    id: str
    jsonrpc: Literal["2.0"] = "2.0"
    method: str = Field(min_length=1)
    params: List[Any] = Field(default_factory=list)


class RequestOptions(BaseModel):
    model_config = ConfigDict(populate_by_name=True)

    # Include cookies and prime them with a pre-flight request first
    send_credentials: StrictBool = Field(default=False, alias="sendCredentials")
