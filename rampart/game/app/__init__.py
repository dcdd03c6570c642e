"""Simulation driver that owns every phase system."""

from rampart.game.app.simulation import SimulationEngine, SimulationSnapshot

__all__ = ["SimulationEngine", "SimulationSnapshot"]
