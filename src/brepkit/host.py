"""Model host: build a model once, or keep rebuilding it on change signals.

The host never hands shape definitions directly to the kernel. Everything
passed between the model side and the kernel side is encoded to bytes and
decoded again, so the model side could move into another process without
changing the kernel side.

Rebuilds run on a dedicated worker thread. Results are passed to the
consumer through a single-slot ``Handoff``: a result that was never picked
up is replaced by the newer one instead of queuing behind it.
"""

from __future__ import annotations

import threading
from pathlib import Path
from typing import Generic, Optional, TypeVar, Union

import structlog

from kernel.geometry import UnsupportedGeometry
from kernel.objects import FaceTriangles, Solid, bounding_volume
from kernel.operations import compute_brep
from kernel.validation import ValidationConfig, ValidationError
from shape_ir.schema import BoundingBox, BuildRequest, BuildResult, Parameters
from shape_ir.serialize import (
    decode_request,
    decode_result,
    decode_shape,
    encode_request,
    encode_result,
    encode_shape,
)

from .models import get_model

logger = structlog.get_logger(__name__)

T = TypeVar("T")

# Editor swap and temporary files
IGNORED_EXTENSIONS = frozenset({"swp", "tmp", "swx"})

# How often the worker checks for a stop request while idle
_POLL_INTERVAL = 0.1


class ModelError(Exception):
    """A model failed to build. Recoverable: the previous good result stays."""

    def __init__(self, message: str, result: BuildResult) -> None:
        super().__init__(message)
        self.result = result


class HostError(Exception):
    """The host itself is unusable, e.g. its worker thread died."""

    pass


def is_relevant_change(path: Union[str, Path]) -> bool:
    """Whether a changed file should trigger a rebuild."""
    return Path(path).suffix.lstrip(".").lower() not in IGNORED_EXTENSIONS


class Handoff(Generic[T]):
    """Single-slot rendezvous between one producer and one consumer."""

    def __init__(self) -> None:
        self._lock = threading.Lock()
        self._item: Optional[T] = None
        self._pending = False
        self._superseded = 0

    def offer(self, item: T) -> bool:
        """Place ``item`` in the slot.

        Returns:
            True if a pending item was replaced
        """
        with self._lock:
            replaced = self._pending
            if replaced:
                self._superseded += 1
            self._item = item
            self._pending = True
        return replaced

    def poll(self) -> Optional[T]:
        """Take the pending item, or return None without blocking."""
        with self._lock:
            if not self._pending:
                return None
            item, self._item = self._item, None
            self._pending = False
        return item

    @property
    def superseded(self) -> int:
        """Number of items replaced before anyone picked them up."""
        return self._superseded


def summarize(model: str, shape) -> BuildResult:
    """Topology summary of a built sketch or solid."""
    bbox = None
    if shape.faces:
        box = bounding_volume(shape)
        bbox = BoundingBox(**box.to_dict())
    triangles = [
        triangle.to_array()
        for face in shape.faces
        if isinstance(face, FaceTriangles)
        for triangle, _ in face.triangles
    ]
    return BuildResult(
        model=model,
        ok=True,
        kind="solid" if isinstance(shape, Solid) else "sketch",
        face_count=len(shape),
        bounding_box=bbox,
        triangles=triangles,
    )


class ModelHost:
    """Builds one model with fixed parameters, on demand or on change signals."""

    def __init__(
        self,
        model: str,
        parameters: Optional[Parameters] = None,
        config: Optional[ValidationConfig] = None,
    ) -> None:
        """Initialize host.

        Args:
            model: Name of a registered model
            parameters: Parameters passed to the model on every build
            config: Validation settings; also provides the build tolerance

        Raises:
            UnknownModel: If the model is not registered
        """
        get_model(model)
        self._model = model
        self._parameters = parameters or Parameters()
        self._config = config or ValidationConfig.default()

        self._results: Handoff[BuildResult] = Handoff()
        self._wake = threading.Event()
        self._stopping = threading.Event()
        self._thread: Optional[threading.Thread] = None
        self._failure: Optional[BaseException] = None
        self._last_good: Optional[BuildResult] = None

        logger.info("Model host initialized", model=model, parameters=self._parameters.to_dict())

    @property
    def last_good(self) -> Optional[BuildResult]:
        """Most recent successful build, kept across failed rebuilds."""
        return self._last_good

    @property
    def superseded(self) -> int:
        return self._results.superseded

    def request(self) -> BuildRequest:
        config = self._config.to_dict()
        return BuildRequest(
            model=self._model,
            parameters=self._parameters,
            tolerance=config["tolerance"],
            checks=tuple(config["checks"]),
        )

    def build_once(self) -> BuildResult:
        """Build the model once, passing request and result through the interchange.

        Returns:
            The decoded build result

        Raises:
            ModelError: If the model rejects its parameters or its shape fails validation
        """
        request = decode_request(encode_request(self.request()))
        log = logger.bind(model=request.model)
        config = ValidationConfig.from_dict(
            {"tolerance": request.tolerance, "checks": request.checks}
        )

        try:
            payload = encode_shape(get_model(request.model)(request.parameters))
            shape_def = decode_shape(payload)
            validated = compute_brep(shape_def, config, request.tolerance)
        except ValidationError as e:
            log.warning("Model failed validation", kind=e.kind.value, findings=len(e.findings))
            raise ModelError(
                str(e),
                BuildResult(
                    model=request.model,
                    ok=False,
                    findings=[f.to_dict() for f in e.findings],
                    error=str(e),
                ),
            ) from e
        except (ValueError, UnsupportedGeometry) as e:
            log.warning("Model build failed", error=str(e))
            raise ModelError(str(e), BuildResult(model=request.model, ok=False, error=str(e))) from e

        result = decode_result(encode_result(summarize(request.model, validated.inner)))
        log.info("Model built", kind=result.kind, faces=result.face_count)
        return result

    # Worker thread

    def start(self) -> None:
        """Start the worker thread and schedule an initial build.

        Raises:
            HostError: If the host was already started
        """
        if self._thread is not None:
            raise HostError("Model host already started")
        self._thread = threading.Thread(
            target=self._run, name=f"model-host-{self._model}", daemon=True
        )
        self._wake.set()
        self._thread.start()
        logger.info("Model host started", model=self._model)

    def stop(self, timeout: Optional[float] = 5.0) -> None:
        """Stop the worker thread and wait for it to exit."""
        self._stopping.set()
        self._wake.set()
        if self._thread is not None:
            self._thread.join(timeout)
        logger.info("Model host stopped", model=self._model)

    def notify_change(self, path: Union[str, Path]) -> bool:
        """Signal that a model source file changed.

        Signals arriving while a rebuild is already pending coalesce into one
        rebuild.

        Returns:
            True if the change triggers a rebuild
        """
        if not is_relevant_change(path):
            logger.debug("Ignoring change", path=str(path))
            return False
        self._wake.set()
        return True

    def receive(self) -> Optional[BuildResult]:
        """Latest result the worker produced, or None if there is nothing new.

        Raises:
            HostError: If the worker thread failed or exited unexpectedly
        """
        if self._failure is not None:
            raise HostError(f"Model host worker failed: {self._failure}") from self._failure
        result = self._results.poll()
        if result is not None:
            return result
        thread = self._thread
        if thread is not None and not thread.is_alive() and not self._stopping.is_set():
            raise HostError("Model host worker exited unexpectedly")
        return None

    def _run(self) -> None:
        log = logger.bind(model=self._model)
        while not self._stopping.is_set():
            if not self._wake.wait(_POLL_INTERVAL):
                continue
            self._wake.clear()
            if self._stopping.is_set():
                break

            try:
                result = self.build_once()
            except ModelError as e:
                # Recoverable: report the failure, keep the previous good result
                self._results.offer(e.result)
                continue
            except Exception as e:
                log.error("Model host worker failed", error=str(e))
                self._failure = e
                return

            self._last_good = result
            if self._results.offer(result):
                log.debug("Superseded an unreceived result")
