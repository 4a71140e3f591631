import abc
import mmap
import os
import subprocess
from typing import Any, Final

import requests
from rich import progress

from ..log import CrossbootLogger
from ..utils.global_mode import ENV_OVERRIDE_FETCHER
from ..version import CROSSBOOT_USER_AGENT
from .errors import FetchError


class BaseFetcher:
    """Downloads one archive from a list of candidate URLs.

    Each URL is tried exactly once; there is no retry. The first URL that
    succeeds wins."""

    def __init__(self, logger: CrossbootLogger, urls: list[str], dest: str) -> None:
        self._logger = logger
        self.urls = urls
        self.dest = dest

    @classmethod
    @abc.abstractmethod
    def is_available(cls, logger: CrossbootLogger) -> bool:
        return False

    @abc.abstractmethod
    def fetch_one(self, url: str, dest: str) -> bool:
        return False

    def fetch(self) -> None:
        for url in self.urls:
            self._logger.I(f"downloading {url} to {self.dest}")
            if self.fetch_one(url, self.dest):
                return
        # all URLs have been tried and all have failed
        raise FetchError(self.dest, "all source URLs have failed")

    @classmethod
    def new(cls, logger: CrossbootLogger, urls: list[str], dest: str) -> "BaseFetcher":
        return get_usable_fetcher_cls(logger)(logger, urls, dest)


KNOWN_FETCHERS: Final[dict[str, type[BaseFetcher]]] = {}


def register_fetcher(name: str, f: type[BaseFetcher]) -> None:
    KNOWN_FETCHERS[name] = f


_cached_usable_fetcher_class: type[BaseFetcher] | None = None


def get_usable_fetcher_cls(logger: CrossbootLogger) -> type[BaseFetcher]:
    global _cached_usable_fetcher_class

    if _cached_usable_fetcher_class is not None:
        return _cached_usable_fetcher_class

    if override_name := os.environ.get(ENV_OVERRIDE_FETCHER):
        logger.D(f"forcing fetcher '{override_name}'")

        cls = KNOWN_FETCHERS.get(override_name)
        if cls is None:
            raise RuntimeError(f"unknown fetcher '{override_name}'")
        if not cls.is_available(logger):
            raise RuntimeError(
                f"the requested fetcher '{override_name}' is unavailable on the system"
            )
        _cached_usable_fetcher_class = cls
        return cls

    for name, cls in KNOWN_FETCHERS.items():
        if not cls.is_available(logger):
            logger.D(f"fetcher '{name}' is unavailable")
            continue
        _cached_usable_fetcher_class = cls
        return cls

    raise RuntimeError("no fetcher is available on the system")


def _probe_version(logger: CrossbootLogger, cmd: str) -> bool:
    try:
        retcode = subprocess.call([cmd, "--version"], stdout=subprocess.DEVNULL)
        return retcode == 0
    except OSError as e:
        logger.D(f"exception occurred when trying to {cmd} --version:", e)
        return False


class CurlFetcher(BaseFetcher):
    @classmethod
    def is_available(cls, logger: CrossbootLogger) -> bool:
        return _probe_version(logger, "curl")

    def fetch_one(self, url: str, dest: str) -> bool:
        argv = [
            "curl",
            "-L",
            "--fail",
            "--connect-timeout",
            "60",
            "-A",
            CROSSBOOT_USER_AGENT,
            "-o",
            dest,
            url,
        ]

        retcode = subprocess.call(argv)
        if retcode != 0:
            self._logger.W(
                f"failed to fetch source archive: command '{' '.join(argv)}' returned {retcode}"
            )
            return False

        return True


register_fetcher("curl", CurlFetcher)


class WgetFetcher(BaseFetcher):
    @classmethod
    def is_available(cls, logger: CrossbootLogger) -> bool:
        return _probe_version(logger, "wget")

    def fetch_one(self, url: str, dest: str) -> bool:
        argv = ["wget", "-T", "60", "-U", CROSSBOOT_USER_AGENT, "-O", dest, url]

        retcode = subprocess.call(argv)
        if retcode != 0:
            self._logger.W(
                f"failed to fetch source archive: command '{' '.join(argv)}' returned {retcode}"
            )
            return False

        return True


register_fetcher("wget", WgetFetcher)


class PythonRequestsFetcher(BaseFetcher):
    def __init__(self, logger: CrossbootLogger, urls: list[str], dest: str) -> None:
        super().__init__(logger, urls, dest)

        self.chunk_size = 4 * mmap.PAGESIZE

    @classmethod
    def is_available(cls, logger: CrossbootLogger) -> bool:
        return True

    def fetch_one(self, url: str, dest: str) -> bool:
        self._logger.D(f"downloading [cyan]{url}[/] to [cyan]{dest}")

        try:
            r = requests.get(
                url,
                headers={"User-Agent": CROSSBOOT_USER_AGENT},
                stream=True,
                timeout=60,
            )
            r.raise_for_status()
        except requests.RequestException as e:
            self._logger.W(f"failed to fetch source archive from {url}: {e}")
            return False

        total_len: int | None = None
        if total_len_str := r.headers.get("Content-Length"):
            total_len = int(total_len_str)

        columns = (
            progress.SpinnerColumn(),
            progress.BarColumn(),
            progress.DownloadColumn(),
            progress.TransferSpeedColumn(),
            progress.TimeRemainingColumn(compact=True, elapsed_when_finished=True),
        )
        dest_filename = os.path.basename(dest)
        with open(dest, "wb") as f:
            with progress.Progress(*columns, console=self._logger.log_console) as pg:
                indeterminate = total_len is None
                kwargs: dict[str, Any]
                if indeterminate:
                    kwargs = {"start": False}
                else:
                    kwargs = {"total": total_len}

                task = pg.add_task(dest_filename, **kwargs)
                for chunk in r.iter_content(self.chunk_size):
                    f.write(chunk)
                    if not indeterminate:
                        pg.advance(task, len(chunk))

        return True


register_fetcher("requests", PythonRequestsFetcher)
