"""Temp target router.

HTTP surface over the temp target controller: manual entry, presets,
cancellation, activation state, and live percentage/target feedback.
"""

from fastapi import APIRouter, Depends, HTTPException, Query, status

from temp_targets.config import settings
from temp_targets.core.targeting.constants import DEFAULT_HALF_BASAL_TARGET
from temp_targets.core.targeting.enums import OperationStatus
from temp_targets.core.targeting.exceptions import EmptyLedgerError
from temp_targets.core.targeting.models import OperationResult, TempTargetRequest
from temp_targets.core.targeting.units import round_half_up
from temp_targets.database import get_session_maker
from temp_targets.logging_config import get_logger
from temp_targets.schemas.temp_target import (
    ActivationStateResponse,
    ComputedPercentageResponse,
    ComputedTargetResponse,
    OperationResponse,
    PresetListResponse,
    TempTargetDefaults,
    TempTargetResponse,
)
from temp_targets.services.temp_target_controller import (
    TempTargetController,
    build_controller,
)
from temp_targets.services.temp_target_store import DatabaseTempTargetStore

logger = get_logger(__name__)

router = APIRouter(prefix="/api/temp-targets", tags=["temp-targets"])

# Controller - lazily initialized, one per process
_controller: TempTargetController | None = None


async def get_controller() -> TempTargetController:
    """FastAPI dependency returning the started controller."""
    global _controller
    if _controller is None:
        controller = build_controller(get_session_maker(), settings)
        await controller.start()
        _controller = controller
    return _controller


def get_store() -> DatabaseTempTargetStore:
    """FastAPI dependency for reading the live temp target store."""
    return DatabaseTempTargetStore(get_session_maker())


def reset_controller() -> None:
    """Drop the cached controller so the next request builds a new one."""
    global _controller
    _controller = None


def _to_response(
    result: OperationResult,
    controller: TempTargetController,
) -> OperationResponse:
    if result.status == OperationStatus.invalid_duration:
        raise HTTPException(
            status_code=status.HTTP_422_UNPROCESSABLE_ENTITY,
            detail="Duration must be greater than zero",
        )
    if result.status == OperationStatus.preset_not_found:
        raise HTTPException(
            status_code=status.HTTP_404_NOT_FOUND,
            detail="Temp target preset not found",
        )
    return OperationResponse.from_result(result, controller.units)


@router.get("/defaults", response_model=TempTargetDefaults)
async def get_defaults(
    controller: TempTargetController = Depends(get_controller),
) -> TempTargetDefaults:
    """Editor defaults and the loop settings in force."""
    return TempTargetDefaults(
        max_sensitivity_ratio=controller.max_ratio,
        units=controller.units,
    )


@router.get("/presets", response_model=PresetListResponse)
async def list_presets(
    controller: TempTargetController = Depends(get_controller),
) -> PresetListResponse:
    """Saved presets in display order."""
    return PresetListResponse(
        presets=[
            TempTargetResponse.from_entry(p, controller.units)
            for p in controller.presets
        ],
        units=controller.units,
    )


@router.post(
    "/presets",
    response_model=OperationResponse,
    status_code=status.HTTP_201_CREATED,
)
async def save_preset(
    body: TempTargetRequest,
    controller: TempTargetController = Depends(get_controller),
) -> OperationResponse:
    """Save the entered temp target as a new preset."""
    return _to_response(await controller.save(body), controller)


@router.put("/presets/{preset_id}", response_model=OperationResponse)
async def update_preset(
    preset_id: str,
    body: TempTargetRequest,
    controller: TempTargetController = Depends(get_controller),
) -> OperationResponse:
    """Replace a preset's target and duration, keeping its identity."""
    return _to_response(await controller.update_preset(preset_id, body), controller)


@router.delete("/presets/{preset_id}", response_model=OperationResponse)
async def remove_preset(
    preset_id: str,
    controller: TempTargetController = Depends(get_controller),
) -> OperationResponse:
    """Delete a preset."""
    return _to_response(await controller.remove_preset(preset_id), controller)


@router.post("/presets/{preset_id}/enact", response_model=OperationResponse)
async def enact_preset(
    preset_id: str,
    controller: TempTargetController = Depends(get_controller),
) -> OperationResponse:
    """Start a saved preset now."""
    return _to_response(await controller.enact_preset(preset_id), controller)


@router.post("/enact", response_model=OperationResponse)
async def enact(
    body: TempTargetRequest,
    controller: TempTargetController = Depends(get_controller),
) -> OperationResponse:
    """Start a temp target from the entered values.

    Rejects a zero duration with 422; nothing is written in that case.
    """
    return _to_response(await controller.enact(body), controller)


@router.post("/cancel", response_model=OperationResponse)
async def cancel(
    controller: TempTargetController = Depends(get_controller),
) -> OperationResponse:
    """Cancel whatever temp target is running."""
    return _to_response(await controller.cancel(), controller)


@router.get("/activation", response_model=ActivationStateResponse)
async def get_activation_state(
    controller: TempTargetController = Depends(get_controller),
) -> ActivationStateResponse:
    """Current record of the activation ledger."""
    try:
        record = await controller.current_state()
    except EmptyLedgerError as e:
        logger.error("Activation ledger read before seeding")
        raise HTTPException(
            status_code=status.HTTP_503_SERVICE_UNAVAILABLE,
            detail="Activation state is not initialized",
        ) from e
    return ActivationStateResponse.from_record(record)


@router.get("/current", response_model=TempTargetResponse | None)
async def get_current_temp_target(
    controller: TempTargetController = Depends(get_controller),
    store: DatabaseTempTargetStore = Depends(get_store),
) -> TempTargetResponse | None:
    """The temp target in force right now, or null."""
    entry = await store.current()
    if entry is None:
        return None
    return TempTargetResponse.from_entry(entry, controller.units)


@router.get("/compute/target", response_model=ComputedTargetResponse)
async def compute_target(
    percentage: float = Query(..., description="Sensitivity percentage."),
    hbt: float = Query(DEFAULT_HALF_BASAL_TARGET, description="Half-basal target."),
    controller: TempTargetController = Depends(get_controller),
) -> ComputedTargetResponse:
    """Target a sensitivity percentage maps to (for live editor feedback)."""
    target = controller.compute_target(percentage, hbt)
    return ComputedTargetResponse(
        percentage=percentage,
        hbt=hbt,
        target=float(target),
        rounded_target=int(round_half_up(target)),
    )


@router.get("/compute/percentage", response_model=ComputedPercentageResponse)
async def compute_percentage(
    target: float = Query(..., description="Target in mg/dL."),
    hbt: float = Query(DEFAULT_HALF_BASAL_TARGET, description="Half-basal target."),
    controller: TempTargetController = Depends(get_controller),
) -> ComputedPercentageResponse:
    """Sensitivity percentage a target maps to (for live editor feedback)."""
    return ComputedPercentageResponse(
        target=target,
        hbt=hbt,
        percentage=int(controller.compute_percentage(target, hbt)),
    )
