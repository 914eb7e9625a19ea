"""
Plugin trigger route.

Slack slash commands POST form data; job runners and older integrations use
GET with query parameters. Both land here.
"""

import logging

from fastapi import APIRouter, BackgroundTasks, Request
from fastapi.responses import PlainTextResponse
from starlette.concurrency import run_in_threadpool

from cmdhandler.dispatch import DispatchEngine, DispatchRequest

logger = logging.getLogger(__name__)
router = APIRouter()


async def _collect_params(request: Request) -> list[tuple[str, str]]:
    """Query parameters followed by form fields, in arrival order."""
    params = list(request.query_params.multi_items())
    if request.method == "POST":
        form = await request.form()
        params.extend(
            (key, value) for key, value in form.multi_items() if isinstance(value, str)
        )
    return params


@router.api_route("/", methods=["GET", "POST"], response_class=PlainTextResponse)
async def dispatch_plugin(
    request: Request,
    background_tasks: BackgroundTasks,
) -> PlainTextResponse:
    """
    Run a plugin.

    Required parameters are ``plugin`` and ``loader``. With ``jobRunnerUrl``
    set the plugin runs before responding and its output is the response
    body. Otherwise the caller gets an acknowledgment right away and the
    plugin runs in the background once the response has been sent.

    Returns:
        Plain text acknowledgment or plugin output. A DispatchError becomes
        its caller-facing message through the app's exception handler.
    """
    engine: DispatchEngine = request.app.state.engine
    dispatch_request = DispatchRequest.from_params(await _collect_params(request))

    # Synchronous runs block on the child process
    outcome = await run_in_threadpool(engine.dispatch, dispatch_request)

    if outcome.pending is not None:
        background_tasks.add_task(engine.run_detached, outcome.pending)

    return PlainTextResponse(
        outcome.body,
        status_code=outcome.status_code,
        background=background_tasks,
    )
