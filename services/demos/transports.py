"""
Demo transports.

Every transport offers the same capabilities: connect(), fetch_resource()
and close(). The variant used for a server is picked from its configured
`transport` name through TRANSPORTS; adding a transport means adding an entry
there.

These are blocking; the demo worker runs them in a thread.
"""

from __future__ import annotations

import ftplib
import shutil
from pathlib import Path, PurePosixPath
from typing import Callable, Dict, Optional, Protocol

from shared.config.bot import GameServer
from shared.logging.logger import get_logger

log = get_logger("demos.transports")

FTP_PORT = 21


class DemoTransport(Protocol):
    def connect(self) -> None:
        ...

    def fetch_resource(self, remote_name: str, local_path: Path) -> Path:
        ...

    def close(self) -> None:
        ...


def _host(address: str) -> str:
    return address.rsplit(":", 1)[0] if ":" in address else address


class FtpDemoTransport:
    def __init__(self, server: GameServer, *, tls: bool = False, timeout: float = 30.0):
        self.server = server
        self.tls = tls
        self.timeout = timeout
        self._ftp: Optional[ftplib.FTP] = None

    def connect(self) -> None:
        ftp = ftplib.FTP_TLS(timeout=self.timeout) if self.tls else ftplib.FTP(timeout=self.timeout)
        ftp.connect(_host(self.server.address), FTP_PORT)
        ftp.login(self.server.username, self.server.password)
        if self.tls:
            ftp.prot_p()
        self._ftp = ftp
        log.info(f"Connected to {self.server.server_id} over {'FTPS' if self.tls else 'FTP'}")

    def fetch_resource(self, remote_name: str, local_path: Path) -> Path:
        if self._ftp is None:
            raise RuntimeError("FTP transport is not connected")

        remote = str(PurePosixPath(self.server.remote_path or "/") / remote_name)
        local_path.parent.mkdir(parents=True, exist_ok=True)
        with local_path.open("wb") as f:
            self._ftp.retrbinary(f"RETR {remote}", f.write)

        log.info(f"Downloaded {remote} from {self.server.server_id} to {local_path}")
        return local_path

    def close(self) -> None:
        if self._ftp is None:
            return
        try:
            self._ftp.quit()
        except ftplib.all_errors as e:
            log.debug(f"FTP quit failed, closing socket: {e}")
            self._ftp.close()
        self._ftp = None


class LocalDemoTransport:
    """Copies demos from a share mounted at the server's remote_path."""

    def __init__(self, server: GameServer):
        self.server = server
        self._root: Optional[Path] = None

    def connect(self) -> None:
        root = Path(self.server.remote_path)
        if not root.is_dir():
            raise FileNotFoundError(f"Demo share {root} is not mounted")
        self._root = root

    def fetch_resource(self, remote_name: str, local_path: Path) -> Path:
        if self._root is None:
            raise RuntimeError("Local transport is not connected")

        local_path.parent.mkdir(parents=True, exist_ok=True)
        shutil.copy2(self._root / remote_name, local_path)
        log.info(f"Copied {remote_name} from {self._root} to {local_path}")
        return local_path

    def close(self) -> None:
        self._root = None


TRANSPORTS: Dict[str, Callable[[GameServer], DemoTransport]] = {
    "ftp": lambda server: FtpDemoTransport(server),
    "ftps": lambda server: FtpDemoTransport(server, tls=True),
    "local": LocalDemoTransport,
}


def transport_for(server: GameServer) -> DemoTransport:
    try:
        factory = TRANSPORTS[server.transport]
    except KeyError:
        raise ValueError(f"Unknown demo transport {server.transport!r}") from None
    return factory(server)
