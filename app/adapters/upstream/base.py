from abc import ABC, abstractmethod
from typing import Any


class AbstractUpstreamClient(ABC):
	"""Interface for clients that fetch lookup payloads from the upstream API."""

	@abstractmethod
	async def fetch(self, number: str) -> dict[str, Any]:
		"""Fetch the upstream payload for a validated phone number.

		Args:
			number: Validated digit string.

		Returns:
			dict[str, Any]: Decoded JSON object returned by the upstream.

		Raises:
			UpstreamAppError: With code upstream_timeout, upstream_error or
				upstream_unreachable when the single attempt fails.
		"""
		...

	async def aclose(self) -> None:
		"""Release network resources held by the client."""
