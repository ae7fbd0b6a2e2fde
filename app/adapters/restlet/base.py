from abc import ABC, abstractmethod
from typing import Any


class AbstractRestletClient(ABC):
	"""Interface for clients that call a RESTlet and return its JSON body."""

	@abstractmethod
	async def get_json(self, url: str) -> Any:
		"""Issue an authenticated GET to ``url`` and return the parsed JSON body.

		Args:
			url: Fully built RESTlet URL, query string included.

		Returns:
			Any: Decoded JSON payload.

		Raises:
			RestletAppError: On transport failure, non-2xx status or a non-JSON body.
		"""
		...

	async def aclose(self) -> None:
		"""Release network resources. No-op by default."""
		return None
