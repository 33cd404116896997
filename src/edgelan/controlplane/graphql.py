"""GraphQL control-plane client over httpx.

Read queries retry on transport failures. Mutations are sent once; a
failed mutation surfaces immediately so the engine can abort the run.
"""
import logging
from typing import Any, Optional

import httpx
from pydantic import ValidationError

from ..config.inventory import ControlPlaneSettings
from ..config.schema import DestType
from ..utils.connection import with_retry
from ..utils.logging_config import timed
from .base import (
    ControlPlane,
    ControlPlaneError,
    InterfaceSlot,
    LocationRecord,
    NetworkRangeRecord,
    RangeUpdate,
    SiteCreate,
    SiteGeneralUpdate,
    SiteSnapshot,
    SlotUpdate,
)
from .models import (
    AccountSnapshotSite,
    EntityLookupResponse,
    to_interface_slot,
    to_location_record,
    to_range_record,
    to_site_snapshot,
)

logger = logging.getLogger(__name__)


ENTITY_LOOKUP_QUERY = """
query entityLookup($accountID: ID!, $type: EntityType!, $limit: Int, $parent: EntityInput, $entityIDs: [ID!], $search: String) {
  entityLookup(accountID: $accountID, type: $type, limit: $limit, parent: $parent, entityIDs: $entityIDs, search: $search) {
    items {
      entity { id name type }
      helperFields
    }
    total
  }
}
"""

ACCOUNT_SNAPSHOT_QUERY = """
query accountSnapshot($siteIDs: [ID!], $accountID: ID) {
  accountSnapshot(accountID: $accountID) {
    sites(siteIDs: $siteIDs) {
      id
      infoSiteSnapshot {
        name
        type
        description
        connType
        countryCode
        countryName
        countryStateName
        cityName
        address
      }
    }
  }
}
"""

UPDATE_SOCKET_INTERFACE_MUTATION = """
mutation siteUpdateSocketInterface($siteId: ID!, $socketInterfaceId: SocketInterfaceIDEnum!, $updateSocketInterfaceInput: UpdateSocketInterfaceInput!, $accountId: ID!) {
  site(accountId: $accountId) {
    updateSocketInterface(siteId: $siteId, socketInterfaceId: $socketInterfaceId, input: $updateSocketInterfaceInput) {
      siteId
      socketInterfaceId
    }
  }
}
"""

UPDATE_NETWORK_RANGE_MUTATION = """
mutation siteUpdateNetworkRange($networkRangeId: ID!, $updateNetworkRangeInput: UpdateNetworkRangeInput!, $accountId: ID!) {
  site(accountId: $accountId) {
    updateNetworkRange(networkRangeId: $networkRangeId, input: $updateNetworkRangeInput) {
      networkRangeId
    }
  }
}
"""

ADD_SOCKET_SITE_MUTATION = """
mutation siteAddSocketSite($addSocketSiteInput: AddSocketSiteInput!, $accountId: ID!) {
  site(accountId: $accountId) {
    addSocketSite(input: $addSocketSiteInput) {
      siteId
    }
  }
}
"""

UPDATE_SITE_GENERAL_MUTATION = """
mutation siteUpdateSiteGeneralDetails($siteId: ID!, $updateSiteGeneralDetailsInput: UpdateSiteGeneralDetailsInput!, $accountId: ID!) {
  site(accountId: $accountId) {
    updateSiteGeneralDetails(siteId: $siteId, input: $updateSiteGeneralDetailsInput) {
      siteId
    }
  }
}
"""

REMOVE_SITE_MUTATION = """
mutation siteRemoveSite($siteId: ID!, $accountId: ID!) {
  site(accountId: $accountId) {
    removeSite(siteId: $siteId) {
      siteId
    }
  }
}
"""


class GraphQLControlPlane(ControlPlane):
    """Control-plane reached through its GraphQL API."""

    def __init__(
        self,
        settings: ControlPlaneSettings,
        client: Optional[httpx.AsyncClient] = None,
    ):
        self.settings = settings
        self.account_id = settings.account_id
        self._owns_client = client is None
        self._http = client or httpx.AsyncClient(
            timeout=httpx.Timeout(settings.timeout),
            verify=settings.verify_ssl,
        )
        self._execute_read = with_retry(
            max_attempts=settings.retries,
            min_wait=settings.retry_min_wait,
            max_wait=settings.retry_max_wait,
        )(self._execute)

    async def close(self) -> None:
        if self._owns_client:
            await self._http.aclose()

    # --- transport ---

    def _headers(self) -> dict:
        return {
            "Content-Type": "application/json",
            "Accept": "application/json",
            "x-api-key": self.settings.get_api_key(),
        }

    async def _execute(self, operation: str, query: str, variables: dict) -> dict:
        """POST one GraphQL document and return its ``data`` member."""
        logger.debug(f"{operation}: variables={variables}")
        resp = await self._http.post(
            self.settings.base_url,
            json={"query": query, "variables": variables},
            headers=self._headers(),
        )
        if resp.status_code >= 400:
            raise ControlPlaneError(
                f"{operation}: HTTP {resp.status_code}: {resp.text[:200]}"
            )
        try:
            body = resp.json()
        except ValueError:
            raise ControlPlaneError(f"{operation}: response is not JSON") from None

        errors = body.get("errors")
        if errors:
            messages = "; ".join(str(e.get("message", e)) for e in errors)
            raise ControlPlaneError(f"{operation}: {messages}", errors=errors)
        data = body.get("data")
        if data is None:
            raise ControlPlaneError(f"{operation}: response carries no data")
        return data

    async def _entity_lookup(
        self,
        entity_type: str,
        parent_site: Optional[str] = None,
        entity_ids: Optional[list[str]] = None,
        search: Optional[str] = None,
    ) -> EntityLookupResponse:
        variables: dict[str, Any] = {
            "accountID": self.account_id,
            "type": entity_type,
            "limit": 0,
        }
        if parent_site is not None:
            variables["parent"] = {"type": "site", "id": parent_site}
        if entity_ids is not None:
            variables["entityIDs"] = entity_ids
        if search is not None:
            variables["search"] = search

        data = await self._execute_read(f"entityLookup[{entity_type}]", ENTITY_LOOKUP_QUERY, variables)
        try:
            return EntityLookupResponse.model_validate(data.get("entityLookup") or {})
        except ValidationError as e:
            raise ControlPlaneError(f"entityLookup[{entity_type}]: malformed response: {e}") from e

    # --- slots ---

    @timed("list_slots")
    async def list_interface_slots(self, site_id: str) -> list[InterfaceSlot]:
        lookup = await self._entity_lookup("networkInterface", parent_site=site_id)
        slots = []
        for item in lookup.items:
            try:
                slot = to_interface_slot(item)
            except ValidationError as e:
                logger.warning(f"Skipping malformed interface entry {item.entity.id}: {e}")
                continue
            # Lookup results may include other sites' entries
            if slot is None or (slot.site_id is not None and slot.site_id != site_id):
                continue
            slots.append(slot)
        return slots

    async def list_lag_members(self, site_id: str) -> list[InterfaceSlot]:
        slots = await self.list_interface_slots(site_id)
        return [s for s in slots if s.dest_type == DestType.LAN_LAG_MEMBER.value]

    @timed("update_slot")
    async def update_interface_slot(
        self, site_id: str, slot_index: str, update: SlotUpdate
    ) -> None:
        await self._execute(
            "updateSocketInterface",
            UPDATE_SOCKET_INTERFACE_MUTATION,
            {
                "siteId": site_id,
                "socketInterfaceId": slot_index,
                "updateSocketInterfaceInput": update.to_input(),
                "accountId": self.account_id,
            },
        )

    # --- ranges ---

    @timed("list_ranges")
    async def list_site_ranges(self, site_id: str) -> list[NetworkRangeRecord]:
        lookup = await self._entity_lookup("siteRange", parent_site=site_id)
        ranges = []
        for item in lookup.items:
            try:
                ranges.append(to_range_record(item))
            except ValidationError as e:
                logger.warning(f"Skipping malformed range entry {item.entity.id}: {e}")
        return ranges

    @timed("update_range")
    async def update_native_range(self, range_id: str, update: RangeUpdate) -> None:
        await self._execute(
            "updateNetworkRange",
            UPDATE_NETWORK_RANGE_MUTATION,
            {
                "networkRangeId": range_id,
                "updateNetworkRangeInput": update.to_input(),
                "accountId": self.account_id,
            },
        )

    @timed("lookup_relay_group")
    async def lookup_relay_group(
        self, name: Optional[str] = None, relay_id: Optional[str] = None
    ) -> str:
        if bool(name) == bool(relay_id):
            raise ValueError("Specify exactly one of name or relay_id")

        if relay_id:
            lookup = await self._entity_lookup("dhcpRelayGroup", entity_ids=[relay_id])
            for item in lookup.items:
                if item.entity.id == relay_id:
                    return item.entity.id
            raise LookupError(f"DHCP relay group with id '{relay_id}' not found")

        lookup = await self._entity_lookup("dhcpRelayGroup", search=name)
        for item in lookup.items:
            if item.entity.name == name:
                return item.entity.id
        raise LookupError(f"DHCP relay group with name '{name}' not found")

    # --- sites ---

    @timed("site_exists")
    async def site_exists(self, site_id: str) -> bool:
        lookup = await self._entity_lookup("site", entity_ids=[site_id])
        return any(item.entity.id == site_id for item in lookup.items)

    @timed("read_snapshot")
    async def read_site_snapshot(self, site_id: str) -> Optional[SiteSnapshot]:
        data = await self._execute_read(
            "accountSnapshot",
            ACCOUNT_SNAPSHOT_QUERY,
            {"siteIDs": [site_id], "accountID": self.account_id},
        )
        sites = (data.get("accountSnapshot") or {}).get("sites") or []
        for raw in sites:
            try:
                site = AccountSnapshotSite.model_validate(raw)
            except ValidationError as e:
                raise ControlPlaneError(f"accountSnapshot: malformed site entry: {e}") from e
            if site.id == site_id:
                return to_site_snapshot(site)
        return None

    @timed("list_locations")
    async def list_locations(
        self, country_code: str, city: Optional[str] = None
    ) -> list[LocationRecord]:
        lookup = await self._entity_lookup("siteLocation", search=city or country_code)
        records = []
        for item in lookup.items:
            try:
                record = to_location_record(item)
            except ValidationError as e:
                logger.warning(f"Skipping malformed location entry {item.entity.id}: {e}")
                continue
            if record is None or record.country_code != country_code:
                continue
            if city and record.city != city:
                continue
            records.append(record)
        return records

    @timed("add_site")
    async def add_site(self, request: SiteCreate) -> str:
        data = await self._execute(
            "addSocketSite",
            ADD_SOCKET_SITE_MUTATION,
            {"addSocketSiteInput": request.to_input(), "accountId": self.account_id},
        )
        site_id = ((data.get("site") or {}).get("addSocketSite") or {}).get("siteId")
        if not site_id:
            raise ControlPlaneError("addSocketSite: response carries no siteId")
        logger.info(f"Created site '{request.name}' with id {site_id}")
        return str(site_id)

    @timed("update_site")
    async def update_site_general(self, site_id: str, update: SiteGeneralUpdate) -> None:
        await self._execute(
            "updateSiteGeneralDetails",
            UPDATE_SITE_GENERAL_MUTATION,
            {
                "siteId": site_id,
                "updateSiteGeneralDetailsInput": update.to_input(),
                "accountId": self.account_id,
            },
        )

    @timed("remove_site")
    async def remove_site(self, site_id: str) -> None:
        await self._execute(
            "removeSite",
            REMOVE_SITE_MUTATION,
            {"siteId": site_id, "accountId": self.account_id},
        )
        logger.info(f"Removed site {site_id}")
