from abc import ABC, abstractmethod
from asyncio import sleep
from dataclasses import dataclass
from typing import Dict, List, Optional, Tuple, Union

from vela.core.errors import CandidateError, VelaError
from vela.core.models import Stream, StreamMetadata
from vela.utils.logger import debrid_logger

# ===========================
# Constants
# ===========================
HTTP_RETRY_ERRORS = [429, 500, 502, 503, 504]
HTTP_AUTH_ERRORS = [401, 403]


# ===========================
# Candidate Outcomes
# ===========================
@dataclass
class Resolved:
    stream: Stream


@dataclass
class Skip:
    error: CandidateError


@dataclass
class Fatal:
    error: VelaError


Outcome = Union[Resolved, Skip, Fatal]


# ===========================
# Base Debrid Service Class
# ===========================
class BaseDebridService(ABC):

    @abstractmethod
    async def add_if_cached(self, info_hash: str) -> Optional[int]:
        pass

    @abstractmethod
    async def get_files(self, torrent_id: int) -> Optional[List[Dict]]:
        pass

    @abstractmethod
    async def request_download_link(self, torrent_id: int, file_id: int) -> Optional[str]:
        pass

    @abstractmethod
    async def create_stream(self, torrent_id: int, file_id: int) -> Optional[Tuple[str, Optional[StreamMetadata]]]:
        pass

    @abstractmethod
    def get_service_name(self) -> str:
        pass

    async def _handle_http_retry_error(
        self,
        response,
        http_error_count: int,
        retry_delay: float,
        max_retries: int
    ) -> Tuple[bool, int]:
        if response.status_code not in HTTP_RETRY_ERRORS:
            return (False, http_error_count)

        http_error_count += 1
        if http_error_count >= max_retries:
            debrid_logger.error(f"HTTP {response.status_code} - Max retries")
            return (False, http_error_count)

        debrid_logger.debug(f"HTTP {response.status_code} - Retry {http_error_count}/{max_retries}")
        await sleep(retry_delay)
        return (True, http_error_count)
