import json
from fastapi import APIRouter, Depends
from fastapi.responses import Response
from sqlalchemy.ext.asyncio import AsyncSession

from keyserver.core import constants
from keyserver.core.clock import Clock, get_clock
from keyserver.core.database import get_db
from keyserver.core.exceptions import AccessKeyNotFoundError
from keyserver.core.rate_limit_config import get_rate_limiter
from keyserver.services import key_service

router = APIRouter(tags=["bind"])

_SCRIPT_TEMPLATE = """
// Key Validation
document.body.style.backgroundColor = '#000000';
document.body.style.color = '#ffffff';
document.body.style.fontFamily = 'monospace';
document.body.style.padding = '20px';
document.body.innerHTML = '<pre>' + JSON.stringify({payload}, null, 2) + '</pre>';
console.log({payload});
"""

def render_bind_script(verdict: dict) -> str:
    return _SCRIPT_TEMPLATE.format(payload=json.dumps(verdict))

@router.get("/bind/{key_id}.js", dependencies=[Depends(get_rate_limiter("/bind"))])
async def bind_key(
    key_id: str,
    db: AsyncSession = Depends(get_db),
    clock: Clock = Depends(get_clock),
):
    """
    Binding: validate the key (counting the use when valid) and answer with a
    script that prints the verdict. Unknown keys get the same script shape.
    """
    try:
        details = await key_service.validate_key(db, key_id, now=clock())
    except AccessKeyNotFoundError:
        verdict = {"msg": constants.MSG_BIND_NOT_FOUND, "code": constants.CODE_NOT_FOUND}
    else:
        if details.valid:
            verdict = {"msg": constants.MSG_BIND_OK, "code": constants.CODE_OK}
        else:
            verdict = {"msg": constants.MSG_BIND_EXPIRED, "code": constants.CODE_GONE}

    return Response(content=render_bind_script(verdict), media_type="application/javascript")
