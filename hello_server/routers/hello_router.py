from fastapi import APIRouter, Request
from hello_server.schemas.hello_schemas import HelloResponse
import logging

logger = logging.getLogger(__name__)

router = APIRouter(tags=["Hello"])

@router.get("/", response_model=HelloResponse)
async def hello(request: Request):
    """
    Log the request headers and answer with a fixed greeting.

    Headers are logged as name/value pairs in arrival order, repeated
    names included. Nothing in the response depends on them.
    """
    logger.info("Request headers: %s", request.headers.items())
    return HelloResponse()
