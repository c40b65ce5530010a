import logging

from .widgets.base import WidgetController


logger = logging.getLogger(__name__)


class CommandDispatcher:
    """Routes device events to the controller registered for their action."""

    def __init__(self, on_global_settings=None, on_plugin_request=None):
        self._controllers: dict[str, WidgetController] = {}
        self._instance_actions: dict[str, str] = {}
        self._on_global_settings = on_global_settings
        self._on_plugin_request = on_plugin_request

    @property
    def controllers(self) -> dict[str, WidgetController]:
        return self._controllers

    @property
    def visible_count(self) -> int:
        return len(self._instance_actions)

    def register(self, controller: WidgetController) -> None:
        if not controller.action:
            raise ValueError(f"{type(controller).__name__} has no action identifier")
        self._controllers[controller.action] = controller

    async def on_visible(self, action: str, instance_id: str, settings: dict | None = None) -> None:
        controller = self._controllers.get(action)
        if controller is None:
            logger.warning("willAppear for unknown action %s", action)
            return
        self._instance_actions[instance_id] = action
        await controller.on_visible(instance_id, settings)

    def on_hidden(self, instance_id: str, action: str | None = None) -> None:
        action = self._instance_actions.pop(instance_id, None) or action
        controller = self._controllers.get(action) if action else None
        if controller is None:
            logger.debug("willDisappear for unknown instance %s", instance_id)
            return
        controller.on_hidden(instance_id)

    async def on_key_press(self, action: str, instance_id: str, settings: dict | None = None) -> None:
        controller = self._controllers.get(action)
        if controller is None:
            logger.warning("keyDown for unknown action %s", action)
            return
        await controller.on_key_press(instance_id, settings)

    def hide_all(self) -> None:
        for controller in self._controllers.values():
            controller.hide_all()
        self._instance_actions.clear()

    async def dispatch(self, message: dict) -> None:
        """Handle one device message; never raises."""
        event = message.get("event")
        action = message.get("action", "")
        context = message.get("context", "")
        settings = (message.get("payload") or {}).get("settings")
        try:
            if event == "willAppear":
                await self.on_visible(action, context, settings)
            elif event == "willDisappear":
                self.on_hidden(context, action)
            elif event == "keyDown":
                await self.on_key_press(action, context, settings)
            elif event == "didReceiveGlobalSettings":
                if self._on_global_settings is not None:
                    await self._on_global_settings(settings or {})
            elif event == "sendToPlugin":
                if self._on_plugin_request is not None:
                    await self._on_plugin_request(action, context, message.get("payload") or {})
            else:
                logger.debug("Ignoring device event %s", event)
        except Exception as e:
            logger.error("Handling %s for %s failed: %s", event, context or action, e)
