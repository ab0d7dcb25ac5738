import time
import json
import logging
import asyncio
from functools import wraps

logger = logging.getLogger("columncraft.telemetry")


def emit_event(event: str, **fields):
    payload = {"event": event, **fields, "ts": time.time()}
    # log as single-line JSON for easy parsing in prod
    logger.info("telemetry=%s", json.dumps(payload, separators=(",", ":"), default=str))


def instrument(route: str, version: str):
    def deco(fn):
        if asyncio.iscoroutinefunction(fn):
            @wraps(fn)
            async def wrapped_async(*args, **kwargs):
                t0 = time.time()
                ok = True
                err = None
                try:
                    return await fn(*args, **kwargs)
                except Exception as e:
                    ok = False
                    err = e.__class__.__name__
                    raise
                finally:
                    dt = int((time.time() - t0) * 1000)
                    emit_event("api_call", route=route, version=version, latency_ms=dt, ok=ok,
                               error_type=err)
            return wrapped_async

        @wraps(fn)
        def wrapped(*args, **kwargs):
            t0 = time.time()
            ok = True
            err = None
            try:
                return fn(*args, **kwargs)
            except Exception as e:
                ok = False
                err = e.__class__.__name__
                raise
            finally:
                dt = int((time.time() - t0) * 1000)
                emit_event("api_call", route=route, version=version, latency_ms=dt, ok=ok,
                           error_type=err)
        return wrapped
    return deco
