"""Move the native range from one interface slot to another.

The move is four independent control-plane calls. A failure part way
leaves the site mid-move; the next pass re-resolves the default slot and
re-applies idempotently, so no rollback or resume token is kept.
"""
import logging
from typing import Awaitable, Callable, Optional

import httpx

from ..config.schema import (
    DestType,
    SiteConfig,
    default_slot_for,
    is_lag_master,
)
from ..controlplane.base import ControlPlane, ControlPlaneError, SlotUpdate
from ..utils.logging_config import timed_section
from .errors import FeatureUnavailableError, ReassignmentStepError
from .resolver import SlotResolver
from .schema import ReassignmentReport, ResolvedSlot

logger = logging.getLogger(__name__)

PLACEHOLDER_SUBNET = "127.111.111.0/24"
PLACEHOLDER_LOCAL_IP = "127.111.111.1"
PLACEHOLDER_NAME_SUFFIX = "_tmp"

STEP_STAGE_PLACEHOLDER = "stage_placeholder"
STEP_DRAIN_LAG_MEMBERS = "drain_lag_members"
STEP_DISABLE_CURRENT = "disable_current_default"
STEP_APPLY_TARGET = "apply_target"


def needs_reassignment(
    declared: SiteConfig,
    current_index: Optional[str],
    establishing: bool = False,
) -> bool:
    """
    Whether the declared slot differs from the one backing the range.

    On first establishment the comparison is against the connection type's
    documented default, and a slot already backing the range is left alone.
    An undeclared slot never triggers a move.
    """
    target = declared.native_range.interface_index
    if not target:
        return False
    if establishing:
        return target != default_slot_for(declared.connection_type) and target != current_index
    return target != current_index


class ReassignmentProtocol:
    """Runs the staged move of the default slot."""

    def __init__(self, control_plane: ControlPlane, resolver: Optional[SlotResolver] = None):
        self.control_plane = control_plane
        self.resolver = resolver or SlotResolver(control_plane)

    async def run(
        self,
        site_id: str,
        declared: SiteConfig,
        current: ResolvedSlot,
    ) -> ReassignmentReport:
        """
        Move the native range onto the declared slot.

        Args:
            site_id: Site being reconciled
            declared: Declared configuration; its interface_index is the target
            current: Resolved current default slot

        Returns:
            ReassignmentReport listing the completed steps

        Raises:
            FeatureUnavailableError: The is-default flag is not exposed, or it
                did not move to the target after all steps succeeded
            ReassignmentStepError: A step's control-plane call failed
        """
        native = declared.native_range
        target = native.interface_index
        if not target:
            raise ValueError("Declared configuration has no interface_index to move to")

        if not current.flagged:
            raise FeatureUnavailableError(
                f"Moving the native range of site {site_id} from {current.index} "
                f"to {target} is not supported for this deployment: the "
                f"control-plane does not expose the default interface flag"
            )

        report = ReassignmentReport(site_id=site_id, from_index=current.index, to_index=target)
        logger.info(f"Site {site_id}: moving native range {current.index} -> {target}")

        steps: list[tuple[str, Callable[[], Awaitable[None]]]] = [
            (STEP_STAGE_PLACEHOLDER, lambda: self.stage_placeholder(site_id, declared)),
            (STEP_DRAIN_LAG_MEMBERS, lambda: self.drain_lag_members(site_id, current, report)),
            (STEP_DISABLE_CURRENT, lambda: self.disable_current_default(site_id, current)),
            (STEP_APPLY_TARGET, lambda: self.apply_target(site_id, declared)),
        ]

        async with timed_section("reassign", site_id=site_id, frm=current.index, to=target):
            for step, action in steps:
                logger.info(f"Site {site_id}: reassignment step {step}")
                await action()
                report.steps_completed.append(step)

        resolved = await self.resolver.resolve(site_id, declared.connection_type)
        if resolved.index != target:
            raise FeatureUnavailableError(
                f"Site {site_id}: default interface is {resolved.index} after moving "
                f"to {target}; reassigning the native range interface is not "
                f"available for this account"
            )

        logger.info(f"Site {site_id}: native range now on {target}")
        return report

    async def _update(
        self, step: str, site_id: str, slot_index: str, update: SlotUpdate
    ) -> None:
        try:
            await self.control_plane.update_interface_slot(site_id, slot_index, update)
        except (ControlPlaneError, httpx.HTTPError) as e:
            raise ReassignmentStepError(step, str(e), site_id, slot=slot_index) from e

    async def stage_placeholder(self, site_id: str, declared: SiteConfig) -> None:
        """Occupy the target slot with a throwaway LAN so it won't collide."""
        native = declared.native_range
        target = native.interface_index
        name = native.interface_name or target
        await self._update(
            STEP_STAGE_PLACEHOLDER,
            site_id,
            target,
            SlotUpdate(
                dest_type=DestType.LAN.value,
                name=f"{name}{PLACEHOLDER_NAME_SUFFIX}",
                subnet=PLACEHOLDER_SUBNET,
                local_ip=PLACEHOLDER_LOCAL_IP,
                translated_subnet=native.translated_subnet or None,
            ),
        )

    async def drain_lag_members(
        self,
        site_id: str,
        current: ResolvedSlot,
        report: Optional[ReassignmentReport] = None,
    ) -> None:
        """Disable every LAG member before its master goes away."""
        if not is_lag_master(current.dest_type):
            return
        try:
            members = await self.control_plane.list_lag_members(site_id)
        except (ControlPlaneError, httpx.HTTPError) as e:
            raise ReassignmentStepError(STEP_DRAIN_LAG_MEMBERS, str(e), site_id) from e

        for member in members:
            if member.dest_type != DestType.LAN_LAG_MEMBER.value:
                continue
            await self._update(
                STEP_DRAIN_LAG_MEMBERS,
                site_id,
                member.index,
                SlotUpdate(dest_type=DestType.INTERFACE_DISABLED.value, name=member.index),
            )
            if report is not None:
                report.drained_members.append(member.index)

    async def disable_current_default(self, site_id: str, current: ResolvedSlot) -> None:
        await self._update(
            STEP_DISABLE_CURRENT,
            site_id,
            current.index,
            SlotUpdate(
                dest_type=DestType.INTERFACE_DISABLED.value,
                name=current.name or current.index,
            ),
        )

    async def apply_target(self, site_id: str, declared: SiteConfig) -> None:
        native = declared.native_range
        target = native.interface_index
        await self._update(
            STEP_APPLY_TARGET,
            site_id,
            target,
            SlotUpdate(
                dest_type=native.interface_dest_type or DestType.LAN.value,
                name=native.interface_name or target,
                subnet=native.native_network_range,
                local_ip=native.local_ip,
                translated_subnet=native.translated_subnet or None,
                lag_min_links=native.lag_min_links if is_lag_master(native.interface_dest_type) else None,
            ),
        )
