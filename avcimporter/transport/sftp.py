"""
SFTP transport for EDI file exchange.

Inbound purchase orders are listed and read with the download account,
acknowledgments and feeds are written with the upload account. Remote
directories are relative to the account's login directory.
"""

import os
import posixpath
import stat
from typing import Dict, List, Optional, Tuple

import paramiko

from avcimporter.config import EDISettings
from avcimporter.models import InboundDocument
from avcimporter.utils.errors import SFTPTransportError
from avcimporter.utils.logging import get_logger

logger = get_logger(__name__)

_SFTP_ERRORS = (paramiko.SSHException, OSError, EOFError)


class SFTPTransport:
    """File-transfer collaborator backed by paramiko."""

    def __init__(
        self,
        host: str,
        username: str,
        private_key_path: str,
        inbound_dir: str = "download",
        outbound_dir: str = "upload",
        port: int = 22,
        upload_username: Optional[str] = None,
        timeout: float = 10.0,
    ) -> None:
        """
        Initialize SFTP transport.

        Args:
            host: SFTP server hostname
            username: Account used for the inbound directory
            private_key_path: SSH private key for key-based auth
            inbound_dir: Remote directory where purchase orders land
            outbound_dir: Remote directory for acknowledgments and feeds
            port: SFTP port
            upload_username: Account used for uploads (defaults to username)
            timeout: Connect timeout in seconds
        """
        self.host = host
        self.port = port
        self.username = username
        self.upload_username = upload_username or username
        self.private_key_path = private_key_path
        self.inbound_dir = inbound_dir
        self.outbound_dir = outbound_dir
        self.timeout = timeout

        self._sessions: Dict[str, Tuple[paramiko.SSHClient, paramiko.SFTPClient]] = {}

    @classmethod
    def from_settings(cls, edi: EDISettings) -> "SFTPTransport":
        """Create a transport from the EDI config section."""
        return cls(
            host=edi.host,
            port=edi.port,
            username=edi.download_username,
            upload_username=edi.upload_username or None,
            private_key_path=os.path.expanduser(edi.private_key_path),
            inbound_dir=edi.inbound_dir,
            outbound_dir=edi.outbound_dir,
            timeout=edi.timeout,
        )

    def __enter__(self) -> "SFTPTransport":
        return self

    def __exit__(self, exc_type, exc_val, exc_tb) -> None:
        self.close()

    def _sftp(self, username: str) -> paramiko.SFTPClient:
        """Return an open SFTP channel for username, connecting on first use."""
        if username in self._sessions:
            return self._sessions[username][1]

        ssh = paramiko.SSHClient()
        ssh.load_system_host_keys()
        ssh.set_missing_host_key_policy(paramiko.AutoAddPolicy())

        try:
            ssh.connect(
                hostname=self.host,
                port=self.port,
                username=username,
                key_filename=self.private_key_path,
                timeout=self.timeout,
                allow_agent=False,
                look_for_keys=False,
            )
            sftp = ssh.open_sftp()
        except _SFTP_ERRORS as e:
            ssh.close()
            raise SFTPTransportError("connect", f"{username}@{self.host}:{self.port}", str(e))

        logger.info(f"Connected to SFTP {self.host}:{self.port} as {username}")
        self._sessions[username] = (ssh, sftp)
        return sftp

    def list_inbound_files(self) -> List[InboundDocument]:
        """
        Read every regular file in the inbound directory.

        Returns:
            Documents sorted by file name

        Raises:
            SFTPTransportError: If listing or reading fails
        """
        sftp = self._sftp(self.username)

        try:
            entries = sftp.listdir_attr(self.inbound_dir)
        except _SFTP_ERRORS as e:
            raise SFTPTransportError("list", self.inbound_dir, str(e))

        documents = []
        for entry in sorted(entries, key=lambda a: a.filename):
            if entry.st_mode is not None and stat.S_ISDIR(entry.st_mode):
                continue

            remote_path = posixpath.join(self.inbound_dir, entry.filename)
            try:
                with sftp.open(remote_path, "rb") as f:
                    content = f.read()
            except _SFTP_ERRORS as e:
                raise SFTPTransportError("read", remote_path, str(e))

            logger.info(f"Downloaded: {remote_path} ({len(content)} bytes)")
            documents.append(InboundDocument(name=entry.filename, content=content))

        return documents

    def put_outbound_file(self, name: str, data: bytes) -> None:
        """
        Write data as name in the outbound directory.

        Raises:
            SFTPTransportError: If the upload fails
        """
        sftp = self._sftp(self.upload_username)
        remote_path = posixpath.join(self.outbound_dir, name)

        try:
            with sftp.open(remote_path, "wb") as f:
                f.write(data)
        except _SFTP_ERRORS as e:
            raise SFTPTransportError("upload", remote_path, str(e))

        logger.info(f"Uploaded: {remote_path} ({len(data)} bytes)")

    def delete_inbound_file(self, name: str) -> None:
        """
        Remove name from the inbound directory.

        Raises:
            SFTPTransportError: If the removal fails
        """
        sftp = self._sftp(self.username)
        remote_path = posixpath.join(self.inbound_dir, name)

        try:
            sftp.remove(remote_path)
        except _SFTP_ERRORS as e:
            raise SFTPTransportError("delete", remote_path, str(e))

        logger.info(f"Deleted remote file: {remote_path}")

    def close(self) -> None:
        """Close all open sessions."""
        for username, (ssh, sftp) in list(self._sessions.items()):
            sftp.close()
            ssh.close()
            logger.debug(f"Closed SFTP session for {username}")
        self._sessions.clear()
