from __future__ import annotations

import json
import logging
from typing import Any, Awaitable, Callable

import httpx

from ...domain.result import UNIT, Failure, Result, Success

LOGGER = logging.getLogger(__name__)

MISSING_ALL_PERMISSION_MARKER = "required permission: all"
MISSING_ALL_PERMISSION_MESSAGE = (
    'API key is missing the permission "all". '
    "Please adapt your permissions in the Immich web interface."
)
NO_INPUT_MESSAGE = "Did not receive an input from the server"

ApiCall = Callable[[], Awaitable[httpx.Response]]


def _forbidden_failure(response: httpx.Response) -> Failure:
    body = response.text
    if MISSING_ALL_PERMISSION_MARKER in body:
        return Failure(MISSING_ALL_PERMISSION_MESSAGE)
    return Failure(f"API key permissions are invalid: {body or 'Unknown error'}")


async def execute_api_call(
    expected_status: int,
    call: ApiCall,
    *,
    expect_body: bool = True,
) -> Result[Any]:
    """Run one request and fold its outcome into a Result.

    Matching status with a body yields the decoded JSON. Matching status with
    no body yields UNIT when ``expect_body`` is False. Every other outcome,
    including transport errors, becomes a Failure with a user-facing message.
    No retries are attempted.
    """
    try:
        response = await call()
        status = response.status_code
        LOGGER.debug("Response code: %s, expected: %s", status, expected_status)

        if status == expected_status:
            if response.content:
                return Success(response.json())
            if not expect_body:
                return Success(UNIT)
            return Failure(NO_INPUT_MESSAGE)

        if status == 403:
            return _forbidden_failure(response)

        LOGGER.error("Invalid status code: %s, expected: %s", status, expected_status)
        return Failure(
            f"Invalid status code from API: {status}, "
            "make sure you are using the latest Immich server release."
        )
    except (httpx.HTTPError, json.JSONDecodeError) as exc:
        LOGGER.exception("Could not fetch items, unknown error")
        return Failure(f"Could not fetch data from API, response: {exc}")
