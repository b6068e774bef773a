"""
Active Directory Connector for the Computer Account Lifecycle Engine.

Reads computer objects over LDAP and applies relocate, disable and
remove operations using ldap3.
"""

import logging
from datetime import datetime, timedelta, timezone
from typing import Any, Dict, List, Optional, Tuple

import ldap3
from ldap3.core.exceptions import LDAPException
from ldap3.utils.conv import escape_filter_chars
from ldap3.utils.dn import to_dn

from ..exceptions import DirectoryError
from ..models import AccountRecord, Platform
from .base_connector import BaseDirectoryConnector, ConnectorResult

logger = logging.getLogger(__name__)

ACCOUNTDISABLE = 0x0002
TREE_DELETE_OID = "1.2.840.113556.1.4.805"
FILETIME_EPOCH = datetime(1601, 1, 1, tzinfo=timezone.utc)

ACCOUNT_ATTRIBUTES = [
    "name",
    "cn",
    "distinguishedName",
    "pwdLastSet",
    "userAccountControl",
    "description",
    "operatingSystem",
    "managedBy",
    "whenCreated",
    "whenChanged",
]


def datetime_to_filetime(value: datetime) -> int:
    """Convert a datetime into a Windows FILETIME (100ns ticks since 1601)."""
    if value.tzinfo is None:
        value = value.replace(tzinfo=timezone.utc)
    delta = value - FILETIME_EPOCH
    return (delta.days * 86400 + delta.seconds) * 10_000_000 + delta.microseconds * 10


def filetime_to_datetime(value: int) -> datetime:
    return FILETIME_EPOCH + timedelta(microseconds=value // 10)


def _single(value: Any) -> Any:
    if isinstance(value, (list, tuple)):
        return value[0] if value else None
    return value


def _to_datetime(value: Any) -> Optional[datetime]:
    """Normalize FILETIME integers, generalized-time strings and datetimes."""
    value = _single(value)
    if value is None or value == "":
        return None
    if isinstance(value, datetime):
        return value if value.tzinfo else value.replace(tzinfo=timezone.utc)
    if isinstance(value, int):
        return filetime_to_datetime(value) if value > 0 else None

    text = str(value).strip()
    if text.isdigit():
        ticks = int(text)
        return filetime_to_datetime(ticks) if ticks > 0 else None
    # Generalized time, e.g. 20240105120000.0Z
    try:
        return datetime.strptime(text[:14], "%Y%m%d%H%M%S").replace(tzinfo=timezone.utc)
    except ValueError:
        logger.warning(f"Unrecognized timestamp value: {text}")
        return None


def parent_container(dn: str) -> str:
    """Strip the leading RDN from a distinguished name."""
    return ",".join(to_dn(dn)[1:])


class ActiveDirectoryConnector(BaseDirectoryConnector):
    """Active Directory connector for machine accounts."""

    def __init__(self, config: Optional[Dict[str, Any]] = None, mock_mode: bool = False,
                 connection: Optional[Any] = None):
        """
        Initialize the connector.

        Args:
            config: server_uri, bind_dn, bind_password, search_base, page_size, receive_timeout
            mock_mode: Accepted for interface parity; use MockDirectoryConnector for mock runs
            connection: Pre-built ldap3 connection, mainly for tests
        """
        super().__init__(config, mock_mode)

        self.search_base = self.config.get('search_base')
        self.page_size = self.config.get('page_size', 500)

        if not self.search_base:
            raise ValueError("Directory search_base is required")

        if connection is not None:
            self.conn = connection
        else:
            self.conn = self._connect()

    def _connect(self):
        server_uri = self.config.get('server_uri')
        if not server_uri:
            raise ValueError("Directory server_uri is required")

        try:
            server = ldap3.Server(server_uri, get_info=ldap3.NONE)
            conn = ldap3.Connection(
                server,
                user=self.config.get('bind_dn'),
                password=self.config.get('bind_password'),
                auto_bind=True,
                receive_timeout=self.config.get('receive_timeout', 15),
            )
        except LDAPException as e:
            raise DirectoryError(f"Failed to bind to {server_uri}: {e}") from e

        logger.info(f"Bound to directory {server_uri}")
        return conn

    def close(self) -> None:
        try:
            self.conn.unbind()
        except LDAPException as e:
            logger.warning(f"Error while unbinding from directory: {e}")

    def build_account_filter(self, older_than: datetime, platform: Platform) -> str:
        """Build the LDAP filter for computers whose credentials predate a date."""
        # pwdLastSet=0 means "never set"; such objects are never reported.
        filetime = datetime_to_filetime(older_than) - 1
        os_filter = "(operatingSystem=*windows*)"
        if platform == Platform.NON_WINDOWS:
            os_filter = f"(!{os_filter})"
        return f"(&(objectCategory=computer)(pwdLastSet>=1)(pwdLastSet<={filetime}){os_filter})"

    def query_accounts(self, older_than: datetime, platform: Platform) -> List[AccountRecord]:
        """Page through computer objects older than the given date."""
        search_filter = self.build_account_filter(older_than, platform)
        logger.debug(f"Querying {self.search_base} with {search_filter}")

        try:
            entries = self.conn.extend.standard.paged_search(
                search_base=self.search_base,
                search_filter=search_filter,
                search_scope=ldap3.SUBTREE,
                attributes=ACCOUNT_ATTRIBUTES,
                paged_size=self.page_size,
                generator=True,
            )
            accounts = [
                self._entry_to_account(entry) for entry in entries
                if entry.get("type") == "searchResEntry"
            ]
        except LDAPException as e:
            raise DirectoryError(f"Account query failed: {e}") from e

        accounts = [account for account in accounts if account is not None]
        logger.info(f"Retrieved {len(accounts)} {platform.value} account(s) older than {older_than:%Y-%m-%d}")
        return accounts

    def _entry_to_account(self, entry: Dict[str, Any]) -> Optional[AccountRecord]:
        attrs = entry.get("attributes") or {}
        dn = entry.get("dn") or _single(attrs.get("distinguishedName"))
        credential_changed_at = _to_datetime(attrs.get("pwdLastSet"))

        if not dn or credential_changed_at is None:
            logger.warning(f"Skipping directory entry without DN or credential timestamp: {dn}")
            return None

        uac = _single(attrs.get("userAccountControl")) or 0
        return AccountRecord(
            name=str(_single(attrs.get("name")) or _single(attrs.get("cn"))),
            distinguished_name=dn,
            credential_changed_at=credential_changed_at,
            enabled=not (int(uac) & ACCOUNTDISABLE),
            description=_single(attrs.get("description")) or None,
            operating_system=_single(attrs.get("operatingSystem")) or None,
            container=parent_container(dn),
            managed_by=_single(attrs.get("managedBy")) or None,
            created_at=_to_datetime(attrs.get("whenCreated")),
            modified_at=_to_datetime(attrs.get("whenChanged")),
        )

    def resolve_container(self, identifier: str) -> Tuple[Optional[str], int]:
        """Resolve a container by full DN or by name under the search base."""
        try:
            if "=" in identifier:
                self.conn.search(
                    search_base=identifier,
                    search_filter="(|(objectClass=organizationalUnit)(objectClass=container))",
                    search_scope=ldap3.BASE,
                    attributes=["distinguishedName"],
                )
            else:
                name = escape_filter_chars(identifier)
                self.conn.search(
                    search_base=self.search_base,
                    search_filter=f"(&(|(objectClass=organizationalUnit)(objectClass=container))(name={name}))",
                    search_scope=ldap3.SUBTREE,
                    attributes=["distinguishedName"],
                )
        except LDAPException as e:
            logger.error(f"Container lookup for '{identifier}' failed: {e}")
            return None, 0

        matches = [entry.entry_dn for entry in self.conn.entries]
        if len(matches) == 1:
            return matches[0], 1
        return None, len(matches)

    def relocate(self, account: AccountRecord, target_container: str) -> ConnectorResult:
        """Move the computer object into the target container."""
        rdn = to_dn(account.distinguished_name)[0]
        return self._apply(
            f"move {account.name} to {target_container}",
            lambda: self.conn.modify_dn(account.distinguished_name, rdn, new_superior=target_container),
        )

    def set_enabled(self, account: AccountRecord, enabled: bool) -> ConnectorResult:
        """Flip the ACCOUNTDISABLE bit of userAccountControl."""
        try:
            self.conn.search(
                search_base=account.distinguished_name,
                search_filter="(objectClass=*)",
                search_scope=ldap3.BASE,
                attributes=["userAccountControl"],
            )
        except LDAPException as e:
            return ConnectorResult(False, f"Failed to read {account.name}", error=str(e))

        if not self.conn.entries:
            return ConnectorResult(False, f"Account {account.name} not found",
                                   error=f"Account {account.name} not found")

        uac = int(self.conn.entries[0].userAccountControl.value or 0)
        new_uac = uac & ~ACCOUNTDISABLE if enabled else uac | ACCOUNTDISABLE
        return self._apply(
            f"set enabled={enabled} on {account.name}",
            lambda: self.conn.modify(
                account.distinguished_name,
                {"userAccountControl": [(ldap3.MODIFY_REPLACE, [new_uac])]},
            ),
        )

    def remove(self, account: AccountRecord) -> ConnectorResult:
        """Delete the computer object and any child objects it owns."""
        return self._apply(
            f"remove {account.name}",
            lambda: self.conn.delete(
                account.distinguished_name, controls=[(TREE_DELETE_OID, True, None)]
            ),
        )

    def _apply(self, description: str, operation) -> ConnectorResult:
        try:
            ok = operation()
        except LDAPException as e:
            logger.error(f"Failed to {description}: {e}")
            return ConnectorResult(False, f"Failed to {description}", error=str(e))

        if not ok:
            error = (self.conn.result or {}).get("description", "unknown error")
            logger.error(f"Failed to {description}: {error}")
            return ConnectorResult(False, f"Failed to {description}", error=error)

        logger.info(f"Directory: {description}")
        return ConnectorResult(True, description.capitalize())
