"""
Tests for the command dispatcher and the write-then-refresh path.

Covers:
1. Unknown actions and argument validation (no RPC before validation)
2. Get-or-set actions: reads never send an RPC
3. Write path: send, check ok, refresh, apply, return refreshed value
4. Failures: error responses, transport errors, timeouts leave state untouched
5. Phase tracking and history
6. Request dispatch through a registry
"""

import asyncio
from unittest.mock import AsyncMock

import pytest

from capsync.capabilities import (
    POWER,
    ActionRequest,
    CommandDispatcher,
    CommandPhase,
    Device,
    DeviceRegistry,
    MockTransport,
    MoonlightLamp,
)
from capsync.config import Settings
from capsync.exceptions import (
    DeviceCommandFailedError,
    InvalidArgumentError,
    UnknownActionError,
)


class TestValidation:
    """Step 1-2: lookup and validation happen before any RPC."""

    @pytest.mark.asyncio
    async def test_unknown_action(self, lamp, transport):
        with pytest.raises(UnknownActionError):
            await lamp.invoke("selfDestruct")
        assert transport.requests == []

    @pytest.mark.asyncio
    async def test_internal_hook_is_not_an_action(self, lamp, transport):
        with pytest.raises(UnknownActionError):
            await lamp.invoke("changeScene", 2)
        assert transport.requests == []

    @pytest.mark.asyncio
    async def test_wrong_type_rejected(self, lamp, transport):
        with pytest.raises(InvalidArgumentError):
            await lamp.invoke("setScene", "sunset")
        assert transport.requests == []

    @pytest.mark.asyncio
    async def test_missing_required_argument(self, lamp, transport):
        with pytest.raises(InvalidArgumentError, match="missing required argument"):
            await lamp.invoke("setScene")
        assert transport.requests == []

    @pytest.mark.asyncio
    async def test_too_many_arguments(self, lamp, transport):
        with pytest.raises(InvalidArgumentError, match="at most 1"):
            await lamp.invoke("setScene", 1, 2)
        with pytest.raises(InvalidArgumentError, match="at most 0"):
            await lamp.invoke("getScene", 1)
        assert transport.requests == []

    @pytest.mark.asyncio
    async def test_constraint_rejected(self, lamp, transport):
        with pytest.raises(InvalidArgumentError):
            await lamp.invoke("setBrightness", 150)
        assert transport.requests == []

    @pytest.mark.asyncio
    async def test_lax_coercion(self, lamp, transport):
        assert await lamp.invoke("setScene", "3") == 3
        assert transport.requests[0] == ("apply_fixed_scene", [3])

    @pytest.mark.asyncio
    @pytest.mark.parametrize("action", ["setScene", "scene", "setBrightness", "increaseBrightness"])
    async def test_bool_is_not_an_integer(self, lamp, transport, action):
        with pytest.raises(InvalidArgumentError, match="boolean"):
            await lamp.invoke(action, True)
        assert transport.requests == []

    @pytest.mark.asyncio
    async def test_integer_string_still_coerced_for_percentage(self, lamp, transport):
        assert await lamp.invoke("setBrightness", "30") == 30
        assert transport.requests[0] == ("set_bright", [30])


class TestGetOrSet:
    """Optional-argument actions: no argument means a pure read."""

    @pytest.mark.asyncio
    async def test_read_sends_nothing(self, settings):
        transport = AsyncMock()
        lamp = MoonlightLamp("lamp", transport, settings=settings)
        lamp.handle_report({"snm": 4, "power": "on", "bright": 30})

        assert await lamp.invoke("scene") == 4
        assert await lamp.invoke("power") is True
        assert await lamp.invoke("brightness") == 30
        assert await lamp.invoke("color") is None
        transport.send.assert_not_called()

    @pytest.mark.asyncio
    async def test_explicit_none_is_a_read(self, settings):
        transport = AsyncMock()
        lamp = MoonlightLamp("lamp", transport, settings=settings)
        assert await lamp.invoke("scene", None) is None
        transport.send.assert_not_called()

    @pytest.mark.asyncio
    async def test_read_of_absent_state(self, settings):
        transport = AsyncMock()
        lamp = MoonlightLamp("lamp", transport, settings=settings)
        assert await lamp.invoke("getScene") is None
        transport.send.assert_not_called()

    @pytest.mark.asyncio
    async def test_argument_takes_write_path(self, lamp, transport):
        assert await lamp.invoke("scene", 2) == 2
        assert transport.methods == ["apply_fixed_scene", "get_prop"]


class TestWritePath:
    """Steps 3-4: the result is what the refresh read back."""

    @pytest.mark.asyncio
    async def test_returns_refreshed_value_not_input(self, settings, ok_transport):
        transport = ok_transport([5])
        lamp = MoonlightLamp("lamp", transport, settings=settings)

        assert await lamp.invoke("setScene", 3) == 5
        assert await lamp.invoke("getScene") == 5

    @pytest.mark.asyncio
    async def test_refresh_follows_write(self, settings, ok_transport):
        transport = ok_transport([3])
        lamp = MoonlightLamp("lamp", transport, settings=settings)

        await lamp.invoke("setScene", 3)

        calls = [c.args for c in transport.send.await_args_list]
        assert calls == [("apply_fixed_scene", [3]), ("get_prop", ["snm"])]

    @pytest.mark.asyncio
    async def test_state_updated_before_result_returned(self, lamp):
        seen = []
        lamp.on("sceneChanged", lambda event, payload: seen.append(payload))

        result = await lamp.invoke("setScene", 4)

        assert seen == [4]
        assert lamp.get_state("scene") == result == 4

    @pytest.mark.asyncio
    async def test_refresh_method_from_settings(self, ok_transport):
        settings = Settings(_env_file=None, refresh_method="get_props")
        transport = ok_transport(["on"])
        lamp = MoonlightLamp("lamp", transport, settings=settings)

        assert await lamp.invoke("turnOn") is True
        assert transport.send.await_args_list[-1].args == ("get_props", ["power"])


class TestFailures:
    """Step 5: failures raise DeviceCommandFailedError and mutate nothing."""

    @pytest.mark.asyncio
    async def test_error_response(self, lamp, transport):
        lamp.handle_report({"snm": 1})
        transport.fail_methods.add("apply_fixed_scene")

        with pytest.raises(DeviceCommandFailedError) as exc_info:
            await lamp.invoke("setScene", 2)

        assert exc_info.value.method == "apply_fixed_scene"
        assert exc_info.value.cause["code"] == -5001
        assert lamp.get_state("scene") == 1
        assert transport.methods == ["apply_fixed_scene"]

    @pytest.mark.asyncio
    async def test_non_ok_result(self, settings):
        transport = AsyncMock()
        transport.send.return_value = {"id": 1, "result": ["busy"]}
        lamp = MoonlightLamp("lamp", transport, settings=settings)

        with pytest.raises(DeviceCommandFailedError, match="unexpected result"):
            await lamp.invoke("setScene", 2)
        assert "scene" not in lamp.store

    @pytest.mark.asyncio
    async def test_transport_exception_wrapped(self, lamp, transport):
        error = ConnectionResetError("socket closed")
        transport.raise_on["set_power"] = error

        with pytest.raises(DeviceCommandFailedError) as exc_info:
            await lamp.invoke("turnOn")

        assert exc_info.value.cause is error
        assert "power" not in lamp.store

    @pytest.mark.asyncio
    async def test_timeout(self):
        settings = Settings(_env_file=None, command_timeout=0.01)
        transport = MockTransport(latency=0.5)
        lamp = MoonlightLamp("lamp", transport, settings=settings)

        with pytest.raises(DeviceCommandFailedError) as exc_info:
            await lamp.invoke("setScene", 2)

        assert exc_info.value.cause == "timeout"
        assert "scene" not in lamp.store

    @pytest.mark.asyncio
    async def test_failed_refresh_fails_command(self, lamp, transport):
        transport.fail_methods.add("get_prop")

        with pytest.raises(DeviceCommandFailedError) as exc_info:
            await lamp.invoke("setScene", 2)

        assert exc_info.value.method == "get_prop"
        assert "scene" not in lamp.store

    @pytest.mark.asyncio
    async def test_short_refresh_result_fails(self, settings, ok_transport):
        transport = ok_transport([])
        lamp = MoonlightLamp("lamp", transport, settings=settings)

        with pytest.raises(DeviceCommandFailedError, match="expected 1 values"):
            await lamp.invoke("setScene", 2)


class TestPhases:
    """Every invocation is recorded with the phase it ended in."""

    @pytest.mark.asyncio
    async def test_write_reaches_done(self, lamp):
        await lamp.invoke("setScene", 2)

        execution = lamp.history[-1]
        assert execution.action == "setScene"
        assert execution.arguments == (2,)
        assert execution.phase == CommandPhase.DONE
        assert execution.methods == ["apply_fixed_scene", "get_prop"]
        assert execution.finished_at is not None

    @pytest.mark.asyncio
    async def test_read_has_no_methods(self, lamp):
        await lamp.invoke("getScene")
        assert lamp.history[-1].phase == CommandPhase.DONE
        assert lamp.history[-1].methods == []

    @pytest.mark.asyncio
    async def test_failure_recorded(self, lamp, transport):
        transport.fail_methods.add("apply_fixed_scene")
        with pytest.raises(DeviceCommandFailedError):
            await lamp.invoke("setScene", 2)

        execution = lamp.history[-1]
        assert execution.phase == CommandPhase.FAILED
        assert "apply_fixed_scene" in execution.error

    @pytest.mark.asyncio
    async def test_validation_failure_recorded(self, lamp):
        with pytest.raises(InvalidArgumentError):
            await lamp.invoke("setScene", "x")
        assert lamp.history[-1].phase == CommandPhase.FAILED
        assert lamp.history[-1].methods == []

    @pytest.mark.asyncio
    async def test_history_bounded(self, lamp):
        for _ in range(8):
            await lamp.invoke("getScene")
        assert len(lamp.history) == 5

    @pytest.mark.asyncio
    async def test_direct_call_tracked(self, lamp):
        await lamp.call("set_bright", [20], refresh=["brightness"])

        execution = lamp.history[-1]
        assert execution.action == "set_bright"
        assert execution.phase == CommandPhase.DONE
        assert lamp.get_state("brightness") == 20

    @pytest.mark.asyncio
    async def test_to_dict(self, lamp):
        await lamp.invoke("setColor", "#00ff00")
        data = lamp.history[-1].to_dict()
        assert data["phase"] == "done"
        assert data["methods"] == ["set_rgb", "get_prop"]
        assert data["arguments"] == ["#00ff00"]


class TestDispatch:
    """dispatch(): controller requests resolved through a registry."""

    @pytest.fixture
    def dispatcher(self, lamp):
        registry = DeviceRegistry()
        registry.register(lamp)
        return CommandDispatcher(registry)

    @pytest.mark.asyncio
    async def test_success(self, dispatcher):
        result = await dispatcher.dispatch(
            ActionRequest(device_id="lamp-1", action="setScene", args=[2])
        )
        assert result.success is True
        assert result.data == {"result": 2}

    @pytest.mark.asyncio
    async def test_color_result_serialized(self, dispatcher):
        result = await dispatcher.dispatch(
            ActionRequest(device_id="lamp-1", action="setColor", args=["rgb(1, 2, 3)"])
        )
        assert result.data == {"result": {"red": 1, "green": 2, "blue": 3}}

    @pytest.mark.asyncio
    async def test_device_not_found(self, dispatcher):
        result = await dispatcher.dispatch(ActionRequest(device_id="nope", action="getScene"))
        assert result.success is False
        assert result.error == "DEVICE_NOT_FOUND"

    @pytest.mark.asyncio
    async def test_unknown_action(self, dispatcher):
        result = await dispatcher.dispatch(ActionRequest(device_id="lamp-1", action="fly"))
        assert result.error == "UNKNOWN_ACTION"

    @pytest.mark.asyncio
    async def test_invalid_argument(self, dispatcher, transport):
        result = await dispatcher.dispatch(
            ActionRequest(device_id="lamp-1", action="setScene", args=[9])
        )
        assert result.error == "INVALID_ARGUMENT"
        assert transport.requests == []

    @pytest.mark.asyncio
    async def test_command_failed(self, dispatcher, transport):
        transport.fail_methods.add("set_power")
        result = await dispatcher.dispatch(ActionRequest(device_id="lamp-1", action="turnOn"))
        assert result.error == "DEVICE_COMMAND_FAILED"
        assert result.to_dict()["success"] is False

    @pytest.mark.asyncio
    async def test_unexpected_error(self, settings):
        class PlainSwitch(Device):
            CAPABILITIES = (POWER,)

        registry = DeviceRegistry()
        registry.register(PlainSwitch("switch", AsyncMock(), settings=settings))

        result = await CommandDispatcher(registry).dispatch(
            ActionRequest(device_id="switch", action="turnOn")
        )
        assert result.error == "EXECUTION_ERROR"
        assert "changePower" in result.message


class TestSerialization:
    """Commands on one device are serialized."""

    @pytest.mark.asyncio
    async def test_concurrent_commands_do_not_interleave(self):
        settings = Settings(_env_file=None)
        transport = MockTransport(latency=0.01)
        lamp = MoonlightLamp("lamp", transport, settings=settings)

        await asyncio.gather(lamp.invoke("setScene", 2), lamp.invoke("setBrightness", 70))

        # each write is followed directly by its own refresh
        methods = transport.methods
        assert methods.index("get_prop") == 1
        assert methods[2] in ("apply_fixed_scene", "set_bright")
        assert methods[3] == "get_prop"
