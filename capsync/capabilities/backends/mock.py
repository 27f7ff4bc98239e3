"""
In-memory transport simulating a Philips Moonlight bedside lamp.

Lets the whole command pipeline run without a real device. Every request
is recorded so tests can assert which RPCs were (or were not) sent.
"""

import asyncio
import logging
from typing import Any, Optional

logger = logging.getLogger("capsync.capabilities.backends.mock")

_DEFAULT_PROPERTIES = {
    "power": "off",
    "bright": 50,
    "cct": 50,
    "rgb": 0xFF0000,
    "color_mode": 2,
    "snm": 1,
}


class MockTransport:
    """
    Simulated lamp speaking the vendor RPC dialect.

    Supports set_power, set_bright, set_cct, set_rgb, apply_fixed_scene,
    go_night and get_prop. ``fail_methods`` makes the listed methods answer
    with an error, ``raise_on`` makes them raise instead.
    """

    def __init__(
        self,
        properties: Optional[dict[str, Any]] = None,
        latency: float = 0.0,
    ):
        self.properties: dict[str, Any] = dict(_DEFAULT_PROPERTIES)
        if properties:
            self.properties.update(properties)
        self.latency = latency
        self.requests: list[tuple[str, list[Any]]] = []
        self.fail_methods: set[str] = set()
        self.raise_on: dict[str, BaseException] = {}
        self._next_id = 1

    @property
    def backend_type(self) -> str:
        return "mock"

    @property
    def methods(self) -> list[str]:
        """Names of all requested methods, in order."""
        return [method for method, _ in self.requests]

    async def send(self, method: str, params: list[Any]) -> dict[str, Any]:
        """Handle one RPC request against the simulated state."""
        self.requests.append((method, list(params)))
        request_id = self._next_id
        self._next_id += 1

        if self.latency:
            await asyncio.sleep(self.latency)

        if method in self.raise_on:
            raise self.raise_on[method]
        if method in self.fail_methods:
            return {"id": request_id, "error": {"code": -5001, "message": "command error"}}

        handler = getattr(self, f"_rpc_{method}", None)
        if handler is None:
            return {"id": request_id, "error": {"code": -32601, "message": "Method not found."}}

        result = handler(params)
        logger.debug("[MOCK] %s(%s) -> %s", method, params, result)
        return {"id": request_id, "result": result}

    def _rpc_get_prop(self, params: list[Any]) -> list[Any]:
        return [self.properties.get(name) for name in params]

    def _rpc_set_power(self, params: list[Any]) -> list[str]:
        self.properties["power"] = params[0]
        return ["ok"]

    def _rpc_set_bright(self, params: list[Any]) -> list[str]:
        self.properties["bright"] = int(params[0])
        self.properties["power"] = "on"
        return ["ok"]

    def _rpc_set_cct(self, params: list[Any]) -> list[str]:
        self.properties["cct"] = int(params[0])
        self.properties["color_mode"] = 2
        return ["ok"]

    def _rpc_set_rgb(self, params: list[Any]) -> list[str]:
        red, green, blue = (int(p) for p in params)
        self.properties["rgb"] = (red << 16) | (green << 8) | blue
        self.properties["color_mode"] = 1
        return ["ok"]

    def _rpc_apply_fixed_scene(self, params: list[Any]) -> list[str]:
        self.properties["snm"] = int(params[0])
        return ["ok"]

    def _rpc_go_night(self, params: list[Any]) -> list[str]:
        self.properties["snm"] = 6
        return ["ok"]
