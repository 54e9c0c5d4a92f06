"""Temp target models.

Four tables back the temp target service:

- temp_target_presets: the saved preset list, rewritten as a whole and
  ordered by ``position``.
- temp_target_activations: append-only activation ledger.
- temp_target_preset_flags: append-only record of the percentage-mode
  parameters each preset was saved with.
- temp_targets: entries submitted to the loop (including cancels).

The two journals use an autoincrement ``seq`` so records sharing a
timestamp still have a defined order.
"""

from datetime import datetime

from sqlalchemy import Boolean, DateTime, Float, Index, Integer, String
from sqlalchemy.orm import Mapped, mapped_column

from temp_targets.models.base import Base


class TempTargetPreset(Base):
    """A saved temp target preset.

    ``created_at`` is the preset's own creation time and survives updates.
    """

    __tablename__ = "temp_target_presets"

    id: Mapped[str] = mapped_column(String(36), primary_key=True)

    position: Mapped[int] = mapped_column(Integer, nullable=False, index=True)

    name: Mapped[str] = mapped_column(String(100), nullable=False)
    reason: Mapped[str] = mapped_column(String(100), nullable=False)

    created_at: Mapped[datetime] = mapped_column(
        DateTime(timezone=True),
        nullable=False,
    )

    # mg/dL
    target_top: Mapped[float | None] = mapped_column(Float, nullable=True)
    target_bottom: Mapped[float | None] = mapped_column(Float, nullable=True)

    duration: Mapped[float] = mapped_column(Float, nullable=False)

    entered_by: Mapped[str] = mapped_column(String(20), nullable=False)

    def __repr__(self) -> str:
        return (
            f"<TempTargetPreset(id={self.id}, name={self.name!r}, "
            f"target={self.target_bottom}, duration={self.duration})>"
        )


class TempTargetActivation(Base):
    """One activation or deactivation event. Never updated or deleted."""

    __tablename__ = "temp_target_activations"

    __table_args__ = (
        Index("ix_temp_target_activations_date_seq", "date", "seq"),
    )

    seq: Mapped[int] = mapped_column(Integer, primary_key=True, autoincrement=True)

    active: Mapped[bool] = mapped_column(Boolean, nullable=False)

    date: Mapped[datetime] = mapped_column(DateTime(timezone=True), nullable=False)

    start_date: Mapped[datetime | None] = mapped_column(
        DateTime(timezone=True),
        nullable=True,
    )

    duration: Mapped[float] = mapped_column(Float, nullable=False, default=0.0)

    # Half-basal target; only set for percentage-mode activations
    hbt: Mapped[float | None] = mapped_column(Float, nullable=True)

    preset_id: Mapped[str | None] = mapped_column(String(36), nullable=True)

    # mg/dL, audit only
    target: Mapped[float | None] = mapped_column(Float, nullable=True)

    def __repr__(self) -> str:
        return (
            f"<TempTargetActivation(seq={self.seq}, active={self.active}, "
            f"date={self.date}, hbt={self.hbt})>"
        )


class TempTargetPresetFlag(Base):
    """Percentage-mode parameters remembered for a preset."""

    __tablename__ = "temp_target_preset_flags"

    __table_args__ = (
        Index("ix_temp_target_preset_flags_preset_date", "preset_id", "date"),
    )

    seq: Mapped[int] = mapped_column(Integer, primary_key=True, autoincrement=True)

    # NULL on the disable record written by cancel
    preset_id: Mapped[str | None] = mapped_column(String(36), nullable=True)

    is_preset: Mapped[bool] = mapped_column(Boolean, nullable=False, default=False)
    enabled: Mapped[bool] = mapped_column(Boolean, nullable=False)

    hbt: Mapped[float | None] = mapped_column(Float, nullable=True)
    duration: Mapped[float] = mapped_column(Float, nullable=False, default=0.0)

    date: Mapped[datetime] = mapped_column(DateTime(timezone=True), nullable=False)

    def __repr__(self) -> str:
        return (
            f"<TempTargetPresetFlag(preset_id={self.preset_id}, "
            f"enabled={self.enabled}, hbt={self.hbt})>"
        )


class TempTargetEntry(Base):
    """A temp target handed to the loop, in submission order."""

    __tablename__ = "temp_targets"

    seq: Mapped[int] = mapped_column(Integer, primary_key=True, autoincrement=True)

    id: Mapped[str] = mapped_column(String(36), nullable=False, index=True)

    name: Mapped[str] = mapped_column(String(100), nullable=False)
    reason: Mapped[str] = mapped_column(String(100), nullable=False)

    created_at: Mapped[datetime] = mapped_column(
        DateTime(timezone=True),
        nullable=False,
        index=True,
    )

    target_top: Mapped[float | None] = mapped_column(Float, nullable=True)
    target_bottom: Mapped[float | None] = mapped_column(Float, nullable=True)

    duration: Mapped[float] = mapped_column(Float, nullable=False)

    entered_by: Mapped[str] = mapped_column(String(20), nullable=False)

    def __repr__(self) -> str:
        return (
            f"<TempTargetEntry(id={self.id}, name={self.name!r}, "
            f"created_at={self.created_at}, duration={self.duration})>"
        )
