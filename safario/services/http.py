import asyncio
import logging
from typing import Any, Dict, Optional

import aiohttp

from safario.config import settings
from safario.core.exceptions import UpstreamServiceError

logger = logging.getLogger(__name__)

async def fetch_json(
    url: str,
    service: str,
    params: Optional[Dict[str, Any]] = None,
    headers: Optional[Dict[str, str]] = None
) -> Any:
    """GET a JSON document from a third-party API. No retries."""
    try:
        async with aiohttp.ClientSession() as session:
            async with session.get(
                url,
                params=params,
                headers=headers,
                timeout=aiohttp.ClientTimeout(total=settings.HTTP_TIMEOUT_SECONDS)
            ) as response:
                if response.status != 200:
                    body = await response.text()
                    logger.error(f"{service} API error: {response.status} - {body[:200]}")
                    raise UpstreamServiceError(service, f"HTTP {response.status}")
                return await response.json(content_type=None)

    except asyncio.TimeoutError:
        logger.error(f"{service} request timeout")
        raise UpstreamServiceError(service, "timeout")
    except aiohttp.ClientError as e:
        logger.error(f"{service} request error: {e}")
        raise UpstreamServiceError(service, str(e))
    except ValueError as e:
        # Includes JSONDecodeError from an HTML error page sent with status 200
        logger.error(f"{service} returned invalid JSON: {e}")
        raise UpstreamServiceError(service, "invalid JSON")
