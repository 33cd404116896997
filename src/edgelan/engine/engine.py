"""Convergence engine - orchestrates establish, converge and teardown.

Each invocation walks the same sequence:
1. Validate the declared configuration (no I/O)
2. Resolve the slot currently backing the native range
3. Move the native range if the declared slot differs
4. Update the native range, then the default interface
5. Hydrate the observed configuration

Remote calls are awaited one after another. The first failure aborts the
invocation; the next pass re-resolves and finishes the work.
"""
import logging
from dataclasses import replace
from typing import Awaitable, Optional, TypeVar

import httpx

from ..config.schema import SiteConfig
from ..controlplane.base import (
    ControlPlane,
    ControlPlaneError,
    LocationInput,
    SiteCreate,
    SiteGeneralUpdate,
)
from .diff import DiffEngine, summarize_diff
from .errors import ConfigValidationError, EngineError, RemoteCallError
from .hydrator import StateHydrator, location_update_fields
from .reassign import ReassignmentProtocol, needs_reassignment
from .resolver import SlotResolver
from .schema import ConvergeRun, ConvergeState, PlanResult, ResolvedSlot, ValidationResult
from .updater import RangeInterfaceUpdater
from .validator import ConfigValidator

logger = logging.getLogger(__name__)

T = TypeVar("T")


class ConvergenceEngine:
    """
    Reconciles declared site configurations against the control-plane.

    Usage:
        engine = ConvergenceEngine(control_plane)
        observed = await engine.establish(declared)
        observed = await engine.converge(declared, prior=observed)
        await engine.teardown(observed.site_id)
    """

    def __init__(self, control_plane: ControlPlane):
        self.control_plane = control_plane
        self.validator = ConfigValidator()
        self.resolver = SlotResolver(control_plane)
        self.reassignment = ReassignmentProtocol(control_plane, self.resolver)
        self.updater = RangeInterfaceUpdater(control_plane)
        self.hydrator = StateHydrator(control_plane, self.resolver)
        self.diff_engine = DiffEngine()
        self.last_run: Optional[ConvergeRun] = None

    async def _remote(
        self,
        operation: str,
        call: Awaitable[T],
        site_id: Optional[str] = None,
    ) -> T:
        """Await a control-plane call, tagging failures with the operation."""
        try:
            return await call
        except (ControlPlaneError, httpx.HTTPError) as e:
            raise RemoteCallError(operation, str(e), site_id=site_id) from e

    def validate(self, declared: SiteConfig) -> ValidationResult:
        """Validate a declared configuration (for external use)."""
        return self.validator.validate(declared)

    async def establish(self, declared: SiteConfig) -> SiteConfig:
        """
        Bring a newly declared site under management.

        Creates the site when the declaration has no site_id.

        Returns:
            Observed configuration after convergence
        """
        return await self._run("establish", declared, prior=None, establishing=True)

    async def converge(self, declared: SiteConfig, prior: Optional[SiteConfig] = None) -> SiteConfig:
        """
        Reconcile an existing site with its declared configuration.

        Args:
            declared: Declared configuration; site_id falls back to prior's
            prior: Observed configuration from the previous pass

        Returns:
            Observed configuration after convergence
        """
        if not declared.site_id and prior is not None and prior.site_id:
            declared = replace(declared, site_id=prior.site_id)
        return await self._run("converge", declared, prior=prior, establishing=False)

    async def _run(
        self,
        operation: str,
        declared: SiteConfig,
        prior: Optional[SiteConfig],
        establishing: bool,
    ) -> SiteConfig:
        run = ConvergeRun(operation=operation, site_id=declared.site_id)
        self.last_run = run
        try:
            observed = await self._converge_steps(run, declared, prior, establishing)
        except EngineError as e:
            run.enter(ConvergeState.FAILED)
            run.error = str(e)
            e.run = run
            logger.error(f"{operation} failed for site {run.site_id or declared.name}: {e}")
            raise
        run.enter(ConvergeState.CONVERGED)
        logger.info(f"Site {run.site_id} converged")
        return observed

    async def _converge_steps(
        self,
        run: ConvergeRun,
        declared: SiteConfig,
        prior: Optional[SiteConfig],
        establishing: bool,
    ) -> SiteConfig:
        run.enter(ConvergeState.ESTABLISHING)

        # Step 1: Validate
        run.enter(ConvergeState.VALIDATING)
        logger.info(f"Validating configuration for site {declared.site_id or declared.name}")
        validation = self.validator.validate(declared)
        for warning in validation.warnings:
            logger.warning(f"Site {declared.name}: {warning}")
        if not validation.valid:
            raise ConfigValidationError(validation)

        site_id = declared.site_id
        if not site_id:
            if not establishing:
                raise EngineError(f"Site '{declared.name}' has no site_id to converge")
            site_id = await self._create_site(declared)
            declared = replace(declared, site_id=site_id)
        run.site_id = site_id

        # Step 2: Resolve
        run.enter(ConvergeState.RESOLVING)
        resolved = await self._resolve(site_id, declared)

        # Step 3: Reassign
        if needs_reassignment(declared, resolved.index, establishing=establishing):
            run.enter(ConvergeState.REASSIGNING)
            run.reassignment = await self._remote(
                "reassign native range",
                self.reassignment.run(site_id, declared, resolved),
                site_id=site_id,
            )
            resolved = await self._resolve(site_id, declared)
        else:
            logger.info(f"Site {site_id}: native range stays on {resolved.index}")

        # Step 4: Update
        run.enter(ConvergeState.UPDATING)
        if not establishing:
            await self._update_general(site_id, declared, prior)

        native_range = await self._remote(
            "resolve native range",
            self.resolver.resolve_native_range(site_id, resolved.subnet),
            site_id=site_id,
        )
        if native_range is None:
            raise RemoteCallError(
                "resolve native range",
                f"no range bound to subnet {resolved.subnet}",
                site_id=site_id,
                slot=resolved.index,
            )
        await self.updater.apply(
            site_id,
            native_range.range_id,
            resolved.index,
            declared,
            prior=prior,
            establishing=establishing,
        )

        # Step 5: Hydrate
        run.enter(ConvergeState.HYDRATING)
        observed = await self._remote(
            "hydrate site", self.hydrator.hydrate(site_id, prior=declared), site_id=site_id
        )
        if observed is None:
            raise RemoteCallError("hydrate site", "site no longer exists", site_id=site_id)
        return observed

    async def _resolve(self, site_id: str, declared: SiteConfig) -> ResolvedSlot:
        logger.info(f"Resolving default interface for site {site_id}")
        return await self._remote(
            "resolve default interface",
            self.resolver.resolve(site_id, declared.connection_type),
            site_id=site_id,
        )

    async def _create_site(self, declared: SiteConfig) -> str:
        logger.info(f"Creating site '{declared.name}' ({declared.connection_type})")
        location = declared.site_location
        request = SiteCreate(
            name=declared.name,
            connection_type=declared.connection_type,
            site_type=declared.site_type,
            description=declared.description,
            native_network_range=declared.native_range.native_network_range,
            translated_subnet=declared.native_range.translated_subnet or None,
            location=LocationInput(
                country_code=location.country_code,
                state_code=location.state_code,
                timezone=location.timezone,
                address=location.address or None,
                city=location.city or None,
            ) if location else LocationInput(),
        )
        return await self._remote("create site", self.control_plane.add_site(request))

    async def _update_general(
        self,
        site_id: str,
        declared: SiteConfig,
        prior: Optional[SiteConfig],
    ) -> None:
        update = SiteGeneralUpdate(
            name=declared.name,
            site_type=declared.site_type,
            description=declared.description,
            location=location_update_fields(
                declared.site_location,
                prior.site_location if prior else None,
            ),
        )
        logger.info(f"Updating general details of site {site_id}")
        await self._remote(
            "update site details",
            self.control_plane.update_site_general(site_id, update),
            site_id=site_id,
        )

    async def teardown(self, site_id: str) -> None:
        """Remove a site. A site that is already gone counts as removed."""
        exists = await self._remote(
            "look up site", self.control_plane.site_exists(site_id), site_id=site_id
        )
        if not exists:
            logger.info(f"Site {site_id} already removed")
            return
        await self._remote("remove site", self.control_plane.remove_site(site_id), site_id=site_id)

    async def plan(self, declared: SiteConfig, prior: Optional[SiteConfig] = None) -> PlanResult:
        """
        Preview what a convergence pass would change, without mutating.

        Returns:
            PlanResult with validation, drift and a readable summary
        """
        validation = self.validator.validate(declared)
        if not validation.valid:
            return PlanResult(
                validation=validation,
                summary="Validation failed:\n" + "\n".join(validation.errors),
            )

        site_id = declared.site_id or (prior.site_id if prior else None)
        observed = None
        if site_id:
            observed = await self._remote(
                "hydrate site",
                self.hydrator.hydrate(site_id, prior=replace(declared, site_id=site_id)),
                site_id=site_id,
            )

        diff = self.diff_engine.calculate(declared, observed)
        return PlanResult(
            validation=validation,
            diff=diff,
            summary=summarize_diff(diff, site=declared.name),
        )
