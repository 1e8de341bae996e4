import uuid
from loguru import logger

async def extract_client_id(client_id: str | None) -> str:
    """
    If the caller provided a client_id, use it.
    If not, generate a short readable one like 'client-a3f2'.
    This prevents anonymous connections from cluttering logs.
    """
    if client_id:
        return client_id
    return f"client-{str(uuid.uuid4())[:4]}"

async def log_connection(protocol: str, client_id: str, extra: dict | None = None) -> None:
    """
    Single structured log entry for a connection event.
    Writes: protocol, client_id and any extra fields that are not None.
    """
    log_str = f"protocol={protocol} client_id={client_id}"
    for k, v in (extra or {}).items():
        if v is not None:
            log_str += f" {k}={v}"
    logger.info(log_str)
