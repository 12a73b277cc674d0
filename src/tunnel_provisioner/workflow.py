"""Workflow orchestrator for managed tunnel provisioning.

The workflow is strictly linear::

    IDLE -> VALIDATING -> PROVISIONING_TUNNEL -> WRITING_CONFIG
         -> [PATCHING_VHOST] -> DONE

Any stage may end it in FAILED instead. Once the remote tunnel exists nothing
is rolled back: later failures are reported as ``PartialFailure`` so the
operator knows there is a remote resource to deal with.
"""

import queue
import threading
from collections.abc import Callable, Iterator
from typing import Any

from .common.exceptions import ConfigExistsError, RequestValidationError
from .common.logging import get_logger
from .config_writer import ConfigWriter
from .models import (
    Failure,
    PartialFailure,
    ProgressEvent,
    ProvisionDraft,
    ProvisionRequest,
    Success,
    TunnelIdentity,
    WorkflowResult,
    WorkflowStage,
    WorkflowState,
)
from .provisioner import CloudflaredProvisioner, TunnelProvisioner
from .settings import ProvisionerSettings
from .validation import build_request, document_root_exists
from .vhost import VHostPatcher

logger = get_logger(__name__)

ProgressCallback = Callable[[ProgressEvent], None]


class _WorkerCrashed:
    def __init__(self, error: BaseException):
        self.error = error


class WorkflowOrchestrator:
    """Runs validation, tunnel creation, config writing and vhost patching.

    One orchestrator may serve many runs. Runs for different config names are
    independent; a second run for a config name that is still in flight is
    rejected at validation.
    """

    def __init__(
        self,
        provisioner: TunnelProvisioner | None = None,
        config_writer: ConfigWriter | None = None,
        vhost_patcher: VHostPatcher | None = None,
        settings: ProvisionerSettings | None = None,
    ):
        self.settings = settings or ProvisionerSettings()
        self.provisioner = provisioner or CloudflaredProvisioner(self.settings)
        self.config_writer = config_writer or ConfigWriter(self.settings)
        self.vhost_patcher = vhost_patcher or VHostPatcher(self.settings)

        self._in_flight: set[str] = set()
        self._in_flight_lock = threading.Lock()
        # Most recent transition of any run
        self.state = WorkflowState.IDLE

    def run_workflow(
        self,
        draft: ProvisionDraft | dict[str, Any],
        cancel: threading.Event | None = None,
    ) -> Iterator[ProgressEvent | WorkflowResult]:
        """Run the workflow, yielding progress events and finally the result.

        The stages run on a worker thread, so a consumer that stops iterating
        does not interrupt a run whose remote tunnel was already created.

        Args:
            draft: Request draft or mapping of its fields
            cancel: Honoured only until tunnel creation starts

        Yields:
            ``ProgressEvent`` per transition, then one ``WorkflowResult``
        """
        events: queue.Queue[Any] = queue.Queue()

        def worker() -> None:
            try:
                events.put(self.run(draft, on_progress=events.put, cancel=cancel))
            except BaseException as e:  # noqa: BLE001
                events.put(_WorkerCrashed(e))

        thread = threading.Thread(target=worker, name="tunnel-workflow", daemon=True)
        thread.start()

        while True:
            item = events.get()
            if isinstance(item, _WorkerCrashed):
                raise item.error
            yield item
            if not isinstance(item, ProgressEvent):
                break
        thread.join()

    def run(
        self,
        draft: ProvisionDraft | dict[str, Any],
        on_progress: ProgressCallback | None = None,
        cancel: threading.Event | None = None,
    ) -> WorkflowResult:
        """Run the workflow synchronously and return its terminal result.

        Args:
            draft: Request draft or mapping of its fields
            on_progress: Receives a ``ProgressEvent`` on every transition
            cancel: Honoured only until tunnel creation starts
        """
        self.state = WorkflowState.IDLE

        def emit(state: WorkflowState, message: str) -> None:
            self.state = state
            logger.debug("Workflow transition", state=state.value, message=message)
            if on_progress is None:
                return
            try:
                on_progress(ProgressEvent(state=state, message=message))
            except Exception:
                logger.exception("Progress callback failed", state=state.value)

        def finish(result: WorkflowResult) -> WorkflowResult:
            if result.ok:
                emit(WorkflowState.DONE, result.message)
                logger.info("Workflow succeeded", result=result.model_dump(mode="json"))
            else:
                emit(WorkflowState.FAILED, result.message)
                logger.warning("Workflow failed", result=result.model_dump(mode="json"))
            return result

        emit(WorkflowState.VALIDATING, "Validating request...")
        try:
            request = build_request(draft)
        except RequestValidationError as e:
            cause = "; ".join(f"{v.field}: {v.message}" for v in e.violations)
            return finish(
                Failure(
                    stage=WorkflowStage.VALIDATION,
                    cause=cause,
                    violations=e.violations,
                )
            )

        if not self._claim(request.config_name):
            return finish(
                Failure(
                    stage=WorkflowStage.VALIDATION,
                    cause=(
                        f"Configuration '{request.config_name}' is already being "
                        "provisioned"
                    ),
                )
            )

        try:
            overwrite = request.overwrite or self.settings.overwrite_config
            if not overwrite and self.config_writer.exists(request.config_name):
                existing = self.config_writer.config_path_for(request.config_name)
                return finish(
                    Failure(
                        stage=WorkflowStage.VALIDATION,
                        cause=str(ConfigExistsError(str(existing))),
                    )
                )
            if cancel is not None and cancel.is_set():
                return finish(
                    Failure(
                        stage=WorkflowStage.VALIDATION,
                        cause="Cancelled before the tunnel was created",
                    )
                )
            return finish(self._provision_and_configure(request, emit))
        finally:
            self._release(request.config_name)

    def _provision_and_configure(
        self,
        request: ProvisionRequest,
        emit: Callable[[WorkflowState, str], None],
    ) -> WorkflowResult:
        emit(
            WorkflowState.PROVISIONING_TUNNEL,
            f"Creating tunnel '{request.tunnel_name}'...",
        )
        try:
            tunnel = self.provisioner.provision(request.tunnel_name)
        except Exception as e:
            logger.error(
                "Tunnel creation failed", name=request.tunnel_name, error=str(e)
            )
            return Failure(stage=WorkflowStage.TUNNEL, cause=str(e) or repr(e))

        emit(
            WorkflowState.WRITING_CONFIG,
            f"Writing configuration '{request.config_name}.yml'...",
        )
        try:
            config_path = self.config_writer.write_config(
                request.config_name,
                tunnel,
                request.hostname,
                request.port,
                overwrite=True if request.overwrite else None,
            )
        except Exception as e:
            logger.error(
                "Config write failed after tunnel creation",
                tunnel=tunnel.uuid,
                config_name=request.config_name,
                error=str(e),
            )
            return PartialFailure(
                tunnel=tunnel, stage=WorkflowStage.CONFIG, cause=str(e) or repr(e)
            )

        vhost_updated = False
        if request.wants_vhost:
            result = self._patch_vhost(request, tunnel, str(config_path), emit)
            if isinstance(result, PartialFailure):
                return result
            vhost_updated = result

        return Success(
            config_path=str(config_path), vhost_updated=vhost_updated, tunnel=tunnel
        )

    def _patch_vhost(
        self,
        request: ProvisionRequest,
        tunnel: TunnelIdentity,
        config_path: str,
        emit: Callable[[WorkflowState, str], None],
    ) -> bool | PartialFailure:
        document_root = request.document_root or ""
        if not document_root_exists(document_root):
            logger.warning("Document root vanished, skipping vhost", path=document_root)
            return False

        emit(
            WorkflowState.PATCHING_VHOST,
            f"Adding vhost entry for '{request.hostname}'...",
        )
        try:
            return self.vhost_patcher.patch_vhost(
                request.hostname,
                document_root,
                port=self.settings.vhost_port or request.port,
            )
        except Exception as e:
            logger.error(
                "vhost patch failed after tunnel and config creation",
                tunnel=tunnel.uuid,
                hostname=request.hostname,
                error=str(e),
            )
            return PartialFailure(
                tunnel=tunnel,
                stage=WorkflowStage.VHOST,
                cause=str(e) or repr(e),
                config_path=config_path,
            )

    def _claim(self, config_name: str) -> bool:
        with self._in_flight_lock:
            if config_name in self._in_flight:
                return False
            self._in_flight.add(config_name)
            return True

    def _release(self, config_name: str) -> None:
        with self._in_flight_lock:
            self._in_flight.discard(config_name)


def run_workflow(
    draft: ProvisionDraft | dict[str, Any],
    settings: ProvisionerSettings | None = None,
    cancel: threading.Event | None = None,
) -> Iterator[ProgressEvent | WorkflowResult]:
    """Run the workflow with default collaborators built from ``settings``."""
    return WorkflowOrchestrator(settings=settings).run_workflow(draft, cancel=cancel)
