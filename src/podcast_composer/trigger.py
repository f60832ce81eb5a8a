"""Submit a compiled payload to the podcast generation endpoint."""

import httpx
from loguru import logger

from .api.client import NotebookClient
from .errors import GenerationSubmitError
from .models import CompiledPayload, GenerationJob

log = logger.bind(stage="generate")


class GenerationTrigger:
    def __init__(self, client: NotebookClient) -> None:
        self.client = client

    async def submit(self, payload: CompiledPayload) -> GenerationJob:
        """Start a generation job. Does not wait for it to finish.

        Raises GenerationSubmitError when the call is rejected or fails in transport.
        """
        log.info(
            f"Submitting episode {payload.episode_name!r} "
            f"(profile={payload.episode_profile}, {len(payload.content):,} chars)"
        )
        try:
            job = await self.client.generate_podcast(payload)
        except httpx.HTTPStatusError as e:
            raise GenerationSubmitError(
                _error_detail(e.response), status_code=e.response.status_code
            ) from e
        except (httpx.HTTPError, TypeError) as e:
            raise GenerationSubmitError(str(e) or type(e).__name__) from e

        log.info(f"Generation job submitted: {job.job_id} ({job.status})")
        return job


def _error_detail(response: httpx.Response) -> str:
    """Server-provided 'detail' if the body is JSON, else the status line."""
    try:
        detail = response.json().get("detail")
    except (ValueError, AttributeError):
        detail = None
    return str(detail) if detail else f"HTTP {response.status_code}"
