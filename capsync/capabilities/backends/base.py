"""
Base protocol for device transports.
"""

from typing import Any, Protocol, runtime_checkable

from ...exceptions import DeviceCommandFailedError


@runtime_checkable
class Transport(Protocol):
    """
    Protocol for RPC transports.

    Transports own framing, retries and connection handling. Responses
    are dicts carrying either a ``result`` or an ``error`` entry.
    """

    @property
    def backend_type(self) -> str:
        """Identifier for this transport type (e.g., 'miio', 'mock')."""
        ...

    async def send(self, method: str, params: list[Any]) -> dict[str, Any]:
        """
        Send one RPC request and return the device response.

        Args:
            method: Vendor RPC method, e.g. "set_power"
            params: Positional parameters for the method

        Returns:
            Response dict from the device
        """
        ...


def response_result(method: str, response: Any) -> Any:
    """
    Extract the result from a response, failing on error responses.

    Raises:
        DeviceCommandFailedError: If the response carries an error or no result
    """
    if not isinstance(response, dict):
        raise DeviceCommandFailedError(method, f"malformed response: {response!r}")
    if response.get("error"):
        raise DeviceCommandFailedError(method, response["error"])
    if "result" not in response:
        raise DeviceCommandFailedError(method, f"response without result: {response!r}")
    return response["result"]


def check_ok(method: str, response: Any) -> None:
    """
    Check that a write command was acknowledged with "ok".

    Raises:
        DeviceCommandFailedError: If the device did not answer ["ok"]
    """
    result = response_result(method, response)
    if result != ["ok"] and result != "ok":
        raise DeviceCommandFailedError(method, f"unexpected result: {result!r}")
