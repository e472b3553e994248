"""
Top-level booster simulation.

Simulation composes the lattice, optics engine, corrector network, ramp table,
energy ramp, longitudinal dynamics and beam tracker, and owns the game phase.
Collaborators drive it through ``advance()`` once per host tick and
``apply_command()`` for player input, and read it through ``snapshot()``.
"""

from typing import Callable, Dict, Optional, Tuple, Type
import logging

import numpy as np

from .types import (
    BoosterConfig, BeamState, Difficulty, EnergyState, GamePhase, LossMode, SimSpeed,
    SimulationSnapshot, geometric_emittance_rms
)
from .energy import EnergyRampController
from .longitudinal import LongitudinalDynamics, TransitionCrossing
from .tracker import BeamTracker, StepEvent
from .history import BeamHistory
from . import commands as cmd
from ..machine_portal.lattice import LatticeModel
from ..machine_portal.correctors import CorrectorAxis, CorrectorNetwork, BumpAxis, BumpConfig
from ..machine_portal.ramp import RampTable
from ..machine_portal.aperture import place_restrictions
from ..models.validators import BUMP_SIZES
from ..optics.engine import OpticsEngine, OpticsState

logger = logging.getLogger(__name__)

TRANSITION_BONUS = 500
EXTRACTION_BONUS = 2000


class Simulation:
    """
    Single owner of all simulation state.

    Example:
        >>> sim = Simulation(BoosterConfig(seed=1))
        >>> sim.apply_command(InjectBeam(x=0.0, y=0.0))
        True
        >>> sim.advance()
        >>> sim.snapshot().phase
        'injection'
    """

    def __init__(self, config: Optional[BoosterConfig] = None, rng: Optional[np.random.Generator] = None):
        """
        Build the machine and draw the random layout.

        Args:
            config: Booster configuration (defaults if None)
            rng: Random generator for restrictions and the injection target;
                seeded from ``config.seed`` if None
        """
        self.config = config if config is not None else BoosterConfig()
        self.rng = rng if rng is not None else np.random.default_rng(self.config.seed)
        cfg = self.config

        self.lattice = LatticeModel(cfg)
        self.energy_ramp = EnergyRampController(cfg)
        self.optics_engine = OpticsEngine(cfg, self.lattice, self.energy_ramp.injection.brho)
        self.tracker = BeamTracker(cfg, self.lattice, self.optics_engine)
        self.longitudinal = LongitudinalDynamics(cfg)
        self.transition = TransitionCrossing(cfg)
        self.network = CorrectorNetwork(cfg.num_cells)
        self.ramp = RampTable(cfg.num_cells, cfg.num_ramp_checkpoints, cfg.max_ramp_delta,
                              cfg.ramp_checkpoint_spacing)
        self.history = BeamHistory(cfg.num_cells, cfg.history_length, cfg.turn_position_length)

        self.restrictions = place_restrictions(self.rng, cfg.num_cells, cfg.restrictions_per_plane)
        r = cfg.injection_target_range
        self.injection_target: Tuple[float, float] = tuple(float(v) for v in self.rng.uniform(-r, r, size=2))

        # Player settings, preserved across resets
        self.difficulty = Difficulty.EASY
        self.sim_speed = SimSpeed.SLOW
        self.adjust_speed = cfg.adjust_speed
        self.bend_bus_trim = 0.0
        self.quad_bus_trim = 0.0
        self.bump: Optional[BumpConfig] = None
        self.selected_checkpoint = 0
        self.best_turns = 0

        self._handlers: Dict[Type[cmd.Command], Callable] = {
            cmd.AdjustCorrector: self._adjust_corrector,
            cmd.SelectRampCheckpoint: self._select_checkpoint,
            cmd.SetBumpMode: self._set_bump_mode,
            cmd.AdjustBump: self._adjust_bump,
            cmd.ShiftBump: self._shift_bump,
            cmd.ZeroBumpTrims: self._zero_bump_trims,
            cmd.ZeroCorrector: self._zero_corrector,
            cmd.CopyCorrectors: self._copy_correctors,
            cmd.ScaleAdjustStep: self._scale_adjust_step,
            cmd.AdjustRfVoltage: self._adjust_rf_voltage,
            cmd.FlipRfPhase: self._flip_rf_phase,
            cmd.AdjustBendBus: self._adjust_bend_bus,
            cmd.AdjustQuadBus: self._adjust_quad_bus,
            cmd.SetSimSpeed: self._set_sim_speed,
            cmd.ToggleDifficulty: self._toggle_difficulty,
            cmd.InjectBeam: self._inject,
            cmd.Reset: self._reset,
            cmd.Pause: self._pause,
            cmd.Resume: self._resume,
        }

        self._start_cycle()
        logger.info(f"Simulation ready: {self.lattice}, {len(self.restrictions)} restrictions")

    # === Cycle state ===

    def _start_cycle(self):
        """Fresh beam, energy and phase; player settings untouched."""
        self.phase = GamePhase.SETUP
        self.loss_mode: Optional[LossMode] = None
        self.running = False
        self.paused = False
        self.tick = 0
        self.turns_completed = 0
        self.energy: EnergyState = self.energy_ramp.injection
        self.optics: OpticsState = self.optics_engine.initial_state()
        self.emittance_rms = geometric_emittance_rms(self.config, self.energy)
        self.beam = BeamState.at_injection(self.config, self.energy, *self.injection_target)
        self.transition.crossed = False
        self.history.clear()
        self.message: Optional[str] = None
        self.ramp.load_checkpoint(self.network, self.selected_checkpoint)

    @property
    def hard(self) -> bool:
        return self.difficulty == Difficulty.HARD

    @property
    def transition_crossed(self) -> bool:
        return self.transition.crossed

    def _set_phase(self, phase: GamePhase):
        if phase != self.phase:
            logger.info(f"Phase {self.phase.value} -> {phase.value} at turn {self.turns_completed}")
            self.phase = phase

    def _lose(self, mode: LossMode, message: Optional[str] = None):
        self._set_phase(GamePhase.LOST)
        self.loss_mode = mode
        self.running = False
        self.message = message or f"Beam lost ({mode.value})"
        logger.info(f"Beam lost at turn {self.turns_completed}, cell {self.beam.cell}, "
                    f"element {self.beam.element}: {mode.value}")

    def _extract(self):
        self._set_phase(GamePhase.EXTRACTION)
        self.running = False
        self.message = f"Beam extracted at {self.energy.ke_gev:.2f} GeV!"
        logger.info(f"{self.message} Score: {self.get_score()}")

    # === Time evolution ===

    def advance(self):
        """
        One host tick: run ``steps_per_tick`` sub-steps for the current speed.

        Does nothing while paused, before injection or after the cycle ended.
        """
        if self.paused or not self.running or self.phase.is_terminal:
            return
        self.tick += 1
        self.ramp.load_turn(self.network, self.turns_completed)
        for _ in range(self.config.steps_for(self.sim_speed)):
            if not self.running:
                break
            self.step()
        if self.tick % self.config.history_interval_ticks == 0:
            d = self.tracker.to_display
            self.history.record_tick(d(self.beam.x), d(self.beam.sigma_x), d(self.beam.y), d(self.beam.sigma_y))

    def step(self) -> Optional[StepEvent]:
        """
        Advance a single sub-step.

        Returns:
            The tracker event, or None if the beam is not circulating
        """
        if not self.running or self.paused:
            return None
        beam = self.beam
        event = self.tracker.step(beam, self.energy, self.optics, self.network,
                                  self.bend_bus_trim, self.quad_bus_trim, self.hard, self.restrictions)
        if event.loss is not None:
            self._lose(event.loss, event.message)
            return event
        if event.cell_completed:
            d = self.tracker.to_display
            self.history.record_cell(event.completed_cell, d(beam.x), d(beam.sigma_x))
        if event.turn_completed:
            self._complete_turn()
        return event

    def _complete_turn(self):
        """Energy, optics, longitudinal motion and transition, once each, then loss and extraction checks."""
        beam = self.beam
        d = self.tracker.to_display
        turn = self.turns_completed + 1
        self.turns_completed = turn
        self.best_turns = max(self.best_turns, turn)
        self.history.record_turn(d(beam.x), d(beam.y), (beam.x, beam.xp), (beam.y, beam.yp))

        self.energy = self.energy_ramp.state_for_turn(turn)
        ramp_phase = self.energy_ramp.phase_for(self.energy)
        self.ramp.load_turn(self.network, turn)
        self.optics = self.optics_engine.compute(self.energy, self.network, self.optics,
                                                 self.quad_bus_trim, beam.intensity, self.emittance_rms)

        self.longitudinal.advance(beam, self.energy)
        losses_after_rf = beam.losses
        self.history.record_longitudinal(beam.phi, beam.de)

        message = self.transition.apply(beam, self.energy, self.optics)
        if message is not None:
            self.message = message

        if beam.losses >= self.config.max_losses:
            if losses_after_rf >= self.config.max_losses:
                self._lose(LossMode.LONGITUDINAL, "Beam escaped the RF bucket!")
            else:
                self._lose(LossMode.LOSS_LIMIT, f"Beam losses exceeded {self.config.max_losses:.0f}!")
            return

        if ramp_phase == GamePhase.EXTRACTION or self.energy_ramp.cycle_complete(turn):
            self._extract()
        else:
            self._set_phase(ramp_phase)

    # === Commands ===

    def apply_command(self, command: cmd.Command) -> bool:
        """
        Apply a player command.

        Returns:
            True if the command was applied; malformed commands and commands
            not allowed in the current state are logged and ignored
        """
        handler = self._handlers.get(type(command))
        if handler is None:
            logger.warning(f"Unknown command {type(command).__name__}; ignored")
            return False
        if self.phase.is_terminal and not isinstance(command, cmd.Reset):
            logger.debug(f"{type(command).__name__} ignored in phase {self.phase.value}")
            return False
        if self.paused and not isinstance(command, (cmd.Resume, cmd.Reset)):
            logger.debug(f"{type(command).__name__} ignored while paused")
            return False
        applied = handler(command)
        return applied is not False

    def _valid_cell(self, cell: int) -> bool:
        if not self.lattice.valid_cell(cell):
            logger.warning(f"Cell {cell} out of range 0..{self.config.num_cells - 1}; command ignored")
            return False
        return True

    def _edit_ramp(self, cell: int, axis: CorrectorAxis, value: float) -> float:
        """Write a setpoint at the selected checkpoint and mirror it to the live value."""
        stored = self.ramp.set(cell, axis, self.selected_checkpoint, value)
        self.network.set(cell, axis, stored)
        return stored

    def _adjust_corrector(self, c: cmd.AdjustCorrector):
        if not self._valid_cell(c.cell):
            return False
        axis = CorrectorAxis(c.axis)
        current = self.ramp.get(c.cell, axis, self.selected_checkpoint)
        self._edit_ramp(c.cell, axis, current + c.delta)

    def _select_checkpoint(self, c: cmd.SelectRampCheckpoint):
        if not 0 <= c.index < self.ramp.num_checkpoints:
            logger.warning(f"Ramp checkpoint {c.index} out of range; command ignored")
            return False
        self.selected_checkpoint = c.index
        self.ramp.load_checkpoint(self.network, c.index)
        self.message = f"Ramp{c.index}"

    def _set_bump_mode(self, c: cmd.SetBumpMode):
        if c.size is None:
            self.bump = None
            self.message = "Bump mode OFF"
            return
        if c.size not in BUMP_SIZES:
            logger.warning(f"Bump size {c.size} not in {BUMP_SIZES}; command ignored")
            return False
        if not self._valid_cell(c.start_cell):
            return False
        self.bump = BumpConfig(size=c.size, start_cell=c.start_cell, axis=BumpAxis(c.axis))
        self.message = f"{c.size}-bump at cell {c.start_cell + 1} ({BumpAxis(c.axis).value})"

    def _require_bump(self) -> bool:
        if self.bump is None:
            logger.warning("No active bump; command ignored")
            return False
        return True

    def _adjust_bump(self, c: cmd.AdjustBump):
        if not self._require_bump():
            return False
        if c.axis is None:
            axes = [CorrectorAxis.H_TRIM, CorrectorAxis.V_TRIM]
        else:
            axes = [BumpAxis(c.axis).corrector]
        step = self.adjust_speed * c.direction
        for cell, coeff in self.bump.cell_coefficients(self.config.num_cells):
            for axis in axes:
                current = self.ramp.get(cell, axis, self.selected_checkpoint)
                self._edit_ramp(cell, axis, current + step * coeff)

    def _shift_bump(self, c: cmd.ShiftBump):
        if not self._require_bump():
            return False
        self.bump = self.bump.shifted(c.delta, self.config.num_cells)

    def _zero_bump_trims(self, c: cmd.ZeroBumpTrims):
        if not self._require_bump():
            return False
        for cell, _ in self.bump.cell_coefficients(self.config.num_cells):
            for axis in (CorrectorAxis.H_TRIM, CorrectorAxis.V_TRIM):
                self._edit_ramp(cell, axis, 0.0)
        self.message = f"Zeroed bump trims (Ramp{self.selected_checkpoint})"

    def _zero_corrector(self, c: cmd.ZeroCorrector):
        if not self._valid_cell(c.cell):
            return False
        self._edit_ramp(c.cell, CorrectorAxis(c.axis), 0.0)

    def _copy_correctors(self, c: cmd.CopyCorrectors):
        if not self._valid_cell(c.cell):
            return False
        self.ramp.copy_cell(c.cell)
        if self.running:
            self.ramp.load_turn(self.network, self.turns_completed)
        else:
            self.ramp.load_checkpoint(self.network, self.selected_checkpoint)
        self.message = f"Copied cell {c.cell + 1} correctors to all (all ramps)!"

    def _scale_adjust_step(self, c: cmd.ScaleAdjustStep):
        cfg = self.config
        if c.up:
            self.adjust_speed = min(self.adjust_speed * 2.0, cfg.max_adjust_speed)
        else:
            self.adjust_speed = max(self.adjust_speed * 0.5, cfg.min_adjust_speed)

    def _adjust_rf_voltage(self, c: cmd.AdjustRfVoltage):
        self.longitudinal.adjust_voltage(c.steps)

    def _flip_rf_phase(self, c: cmd.FlipRfPhase):
        self.longitudinal.flip_phase()

    def _adjust_bend_bus(self, c: cmd.AdjustBendBus):
        limit = self.config.max_bend_bus_trim
        self.bend_bus_trim = float(np.clip(self.bend_bus_trim + c.delta, -limit, limit))

    def _adjust_quad_bus(self, c: cmd.AdjustQuadBus):
        limit = self.config.max_quad_bus_trim
        self.quad_bus_trim = float(np.clip(self.quad_bus_trim + c.delta, -limit, limit))

    def _set_sim_speed(self, c: cmd.SetSimSpeed):
        self.sim_speed = SimSpeed(c.speed) if c.speed is not None else self.sim_speed.next()

    def _toggle_difficulty(self, c: cmd.ToggleDifficulty):
        if self.running:
            logger.warning("Difficulty can only be changed before injection; command ignored")
            return False
        self.difficulty = self.difficulty.toggle()
        self.message = f"Difficulty: {self.difficulty.value}"

    def _inject(self, c: cmd.InjectBeam):
        """Launch a fresh beam at turn 0 from the setup phase."""
        if self.phase != GamePhase.SETUP:
            logger.warning(f"Injection only from setup, phase is {self.phase.value}; command ignored")
            return False
        x = self.injection_target[0] if c.x is None else c.x
        y = self.injection_target[1] if c.y is None else c.y

        self.turns_completed = 0
        self.tick = 0
        self.energy = self.energy_ramp.injection
        self.beam = BeamState.at_injection(self.config, self.energy, x, y)
        self.transition.crossed = False
        self.history.clear()
        self.ramp.load_turn(self.network, 0)
        self.optics = self.optics_engine.compute(self.energy, self.network, self.optics_engine.initial_state(),
                                                 self.quad_bus_trim, self.beam.intensity, self.emittance_rms)
        self.running = True
        self._set_phase(GamePhase.INJECTION)
        self.message = f"Injected at x={x:.1f} y={y:.1f} mm"

    def _reset(self, c: cmd.Reset):
        self._start_cycle()
        self.message = "Reset"
        logger.info("Simulation reset")

    def _pause(self, c: cmd.Pause):
        if not self.running:
            return False
        self.paused = True

    def _resume(self, c: cmd.Resume):
        if not self.paused:
            return False
        self.paused = False

    # === Read-only views ===

    def get_score(self) -> int:
        """Intensity score + completed turns + transition bonus + extraction bonus."""
        score = int(self.beam.intensity * 1000) + self.turns_completed
        if self.transition.crossed:
            score += TRANSITION_BONUS
        if self.phase == GamePhase.EXTRACTION:
            score += EXTRACTION_BONUS
        return score

    def is_game_over(self) -> bool:
        return self.phase.is_terminal

    def stability_score(self) -> float:
        return self.history.stability_score(self.config.aperture)

    def snapshot(self) -> SimulationSnapshot:
        return SimulationSnapshot(
            phase=self.phase,
            loss_mode=self.loss_mode,
            beam=self.beam.snapshot(),
            energy=self.energy,
            optics=self.optics,
            history=self.history.snapshot(),
            running=self.running,
            paused=self.paused,
            turns_completed=self.turns_completed,
            best_turns=self.best_turns,
            transition_crossed=self.transition.crossed,
            difficulty=self.difficulty,
            sim_speed=self.sim_speed,
            selected_checkpoint=self.selected_checkpoint,
            adjust_speed=self.adjust_speed,
            rf_voltage_mv=self.longitudinal.rf_voltage_mv,
            rf_phase_deg=self.longitudinal.rf_phase_deg,
            bend_bus_trim=self.bend_bus_trim,
            quad_bus_trim=self.quad_bus_trim,
            bump=self.bump.to_dict() if self.bump is not None else None,
            message=self.message,
        )

    def __repr__(self):
        return (f"Simulation(phase={self.phase.value}, turn={self.turns_completed}, "
                f"losses={self.beam.losses:.1f})")
