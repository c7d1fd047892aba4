"""Simulation engine: everything that turns parameters into waveforms.

Modules:
    design: Experimental designs (event tables) from event variables
    formula: Formula parsing and design matrices
    basis: Basis functions (hanning, gaussian)
    onsets: Inter-onset distance models
    noise: Additive noise models (torch)
    head_model: Standard head model and leadfield projections
    components: Linear, mixed and multichannel ERP components
    simulation_engine: Reference engine summing components into data
"""

from .basis import hanning, parse_basis
from .design import Design, DesignBuilder
from .formula import FormulaSpec, design_matrix, parse_formula
from .head_model import HeadModel
from .noise import NoiseModel, NoNoise, PinkNoise, RedNoise, WhiteNoise
from .onsets import LogNormalOnset, NoOnset, OnsetModel, UniformOnset
from .components import LinearModelComponent, MixedModelComponent, MultichannelComponent
from .simulation_engine import ReferenceSimulationEngine, SimulationEngineProtocol

__all__ = [
    "hanning",
    "parse_basis",
    "Design",
    "DesignBuilder",
    "FormulaSpec",
    "design_matrix",
    "parse_formula",
    "HeadModel",
    "NoiseModel",
    "NoNoise",
    "PinkNoise",
    "RedNoise",
    "WhiteNoise",
    "LogNormalOnset",
    "NoOnset",
    "OnsetModel",
    "UniformOnset",
    "LinearModelComponent",
    "MixedModelComponent",
    "MultichannelComponent",
    "ReferenceSimulationEngine",
    "SimulationEngineProtocol",
]
