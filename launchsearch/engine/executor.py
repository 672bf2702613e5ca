"""Action execution boundary.

Turns a chosen result into exactly one external side effect. Execution runs
as its own task and never feeds errors back into the search session.
"""

import asyncio
from typing import Any, Awaitable, Callable, Dict, Iterable, Optional, Sequence, Set
from urllib.parse import quote, quote_plus

import click
from loguru import logger

from .classifier import to_url
from .errors import GatewayError, StoreError
from .events import Event, EventBus
from .interfaces import ActionGateway, LaunchGateway
from .models import ActionResult, ActionType, AppInfo, AppResult, ItemKind, SearchResult, ShortcutResult
from .weights import WeightStore


# ActionType -> ActionGateway method name
ACTION_HANDLERS: Dict[ActionType, str] = {
    ActionType.CALL: 'dial',
    ActionType.MESSAGE: 'message',
    ActionType.EMAIL: 'compose_email',
    ActionType.CREATE_CONTACT: 'create_contact',
    ActionType.SCHEDULE_EVENT: 'schedule_event',
    ActionType.SET_ALARM: 'set_alarm',
    ActionType.TIMER: 'start_timer',
    ActionType.OPEN_URL: 'open_url',
    ActionType.WEB_SEARCH: 'web_search',
    ActionType.SHARE: 'share',
    ActionType.SEARCH_FILES: 'search_files',
    ActionType.SEARCH_WIKIPEDIA: 'search_wikipedia',
    ActionType.SEARCH_PLACES: 'search_places',
}


class ActionExecutor:
    """
    Executes actions and launches items.

    Launching an app or shortcut also reinforces its usage weight; plain
    actions carry no weight.
    """

    def __init__(
        self,
        action_gateway: ActionGateway,
        launch_gateway: LaunchGateway,
        weights: WeightStore,
        event_bus: Optional[EventBus] = None
    ):
        self.action_gateway = action_gateway
        self.launch_gateway = launch_gateway
        self.weights = weights
        self.event_bus = event_bus
        self._tasks: Set[asyncio.Task] = set()

    async def execute(self, action: ActionResult) -> bool:
        """
        Run the side effect for one action.

        Returns:
            True if the gateway call succeeded; False for failures and
            unknown action types
        """
        method_name = ACTION_HANDLERS.get(action.action_type)
        if method_name is None:
            logger.debug(f"No handler for action type {action.action_type}; ignoring")
            return False

        try:
            await getattr(self.action_gateway, method_name)(action.value)
            logger.info(f"Executed {action.action_type.value} for '{action.value}'")
            return True
        except Exception as e:
            logger.error(f"Action {action.action_type.value} failed for '{action.value}': {e}")
            self._publish('action.failed', action=action.action_type.value, value=action.value, error=str(e))
            return False

    def dispatch(self, action: ActionResult) -> asyncio.Task:
        """Schedule an action without waiting for it."""
        task = asyncio.get_running_loop().create_task(self.execute(action))
        self._tasks.add(task)
        task.add_done_callback(self._tasks.discard)
        return task

    async def wait_idle(self) -> None:
        if self._tasks:
            await asyncio.gather(*list(self._tasks), return_exceptions=True)

    async def launch_app(self, app: AppInfo) -> Optional[float]:
        if not await self._launch(app.key, self.launch_gateway.launch_item, app.key):
            return None
        return self._record(app.key, ItemKind.APP, {'label': app.label})

    async def launch_shortcut(self, result: ShortcutResult) -> Optional[float]:
        shortcut = result.shortcut
        launched = await self._launch(
            result.key, self.launch_gateway.launch_shortcut, shortcut.owner_key, shortcut.shortcut_id
        )
        if not launched:
            return None
        return self._record(result.key, ItemKind.SHORTCUT, {
            'owner': shortcut.owner_key,
            'id': shortcut.shortcut_id,
            'label': shortcut.short_label,
        })

    async def launch(self, result: SearchResult) -> None:
        """Open whatever kind of result was confirmed."""
        if isinstance(result, AppResult):
            await self.launch_app(result.app)
        elif isinstance(result, ShortcutResult):
            await self.launch_shortcut(result)
        else:
            await self.execute(result)

    async def _launch(self, key: str, gateway_call: Callable[..., Awaitable[Any]], *args) -> bool:
        try:
            await gateway_call(*args)
            return True
        except Exception as e:
            logger.error(f"Launch of {key} failed: {e}")
            self._publish('launch.failed', key=key, error=str(e))
            return False

    def _record(self, key: str, kind: ItemKind, data: Dict[str, Any]) -> Optional[float]:
        # The launch already happened; a failed weight write must not undo it
        try:
            weight = self.weights.record_launch(key, kind, data)
        except StoreError as e:
            logger.error(f"Launch of {key} not recorded: {e}")
            return None
        self._publish('launch.recorded', key=key, kind=kind.value, weight=weight)
        return weight

    def _publish(self, event_type: str, **data) -> None:
        if self.event_bus is not None:
            self.event_bus.publish(Event(type=event_type, data=data))


class UriActionGateway(ActionGateway):
    """
    Desktop gateway that expresses each action as a URI handed to ``opener``.

    Actions with no URI form (contacts, calendar, alarms, timers, file search)
    launch the first installed app whose key contains one of a set of
    markers. ``share`` hands the text to ``clipboard``.
    """

    APP_MARKERS = {
        'create_contact': ('contacts', 'dialer'),
        'schedule_event': ('calendar',),
        'set_alarm': ('deskclock', 'clock'),
        'start_timer': ('deskclock', 'clock'),
        'search_files': ('files', 'filemanager', 'myfiles', 'nautilus'),
    }

    def __init__(
        self,
        opener: Callable[[str], Any] = click.launch,
        clipboard: Optional[Callable[[str], Any]] = None,
        launch_gateway: Optional[LaunchGateway] = None,
        apps: Iterable[AppInfo] = ()
    ):
        self.opener = opener
        self.clipboard = clipboard or click.echo
        self.launch_gateway = launch_gateway
        self.apps: Sequence[AppInfo] = list(apps)

    async def _open(self, uri: str) -> None:
        logger.debug(f"Opening {uri}")
        self.opener(uri)

    async def _launch_app_for(self, action: str) -> None:
        markers = self.APP_MARKERS[action]
        app = next(
            (app for app in self.apps if any(marker in app.key.lower() for marker in markers)),
            None
        )
        if app is None or self.launch_gateway is None:
            raise GatewayError(f"No installed app handles {action}")
        await self.launch_gateway.launch_item(app.key)

    async def dial(self, number: str) -> None:
        await self._open(f"tel:{quote(number, safe='+')}")

    async def message(self, number: str) -> None:
        await self._open(f"sms:{quote(number, safe='+')}")

    async def compose_email(self, address: str) -> None:
        await self._open(f"mailto:{address}")

    async def create_contact(self, value: str) -> None:
        await self._launch_app_for('create_contact')

    async def schedule_event(self, text: str) -> None:
        await self._launch_app_for('schedule_event')

    async def set_alarm(self, text: str) -> None:
        await self._launch_app_for('set_alarm')

    async def start_timer(self, text: str) -> None:
        await self._launch_app_for('start_timer')

    async def open_url(self, url: str) -> None:
        await self._open(to_url(url))

    async def web_search(self, text: str) -> None:
        await self._open(f"https://www.google.com/search?q={quote_plus(text)}")

    async def share(self, text: str) -> None:
        self.clipboard(text)

    async def search_files(self, text: str) -> None:
        await self._launch_app_for('search_files')

    async def search_wikipedia(self, text: str) -> None:
        await self._open(f"https://en.wikipedia.org/wiki/Special:Search?search={quote_plus(text)}")

    async def search_places(self, text: str) -> None:
        await self._open(f"geo:0,0?q={quote_plus(text)}")
