import asyncio
import logging

from biztech.core.config import settings
from biztech.core.db import SessionLocal
from biztech.services.outbox_dispatcher import dispatch_outbox
from worker.celery_app import celery


log = logging.getLogger(__name__)

POLL_SECONDS = 2
BATCH_SIZE = 100


async def _tick() -> int:
    async with SessionLocal() as db:
        n = await dispatch_outbox(db, batch_size=BATCH_SIZE)
    if n:
        log.info("tick: enqueued %d outbox events", n)
    return n


async def main():
    celery.connection().ensure_connection(max_retries=3)

    logging.basicConfig(level=settings.log_level)
    log.info("dispatcher: started")
    while True:
        try:
            await _tick()
        except Exception:
            log.exception("dispatcher: tick crashed")
        await asyncio.sleep(POLL_SECONDS)


if __name__ == "__main__":
    asyncio.run(main())
