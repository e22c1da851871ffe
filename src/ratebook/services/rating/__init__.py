# PolicyCore - Policy Decision Management System
# Copyright (C) 2025 Luiz Frias <luizf35@gmail.com>
# Form F[x] Labs
#
# This software is dual-licensed under AGPL-3.0 and Commercial License.
# For commercial licensing, contact: luizf35@gmail.com
# See LICENSE file for full terms.

"""Rating engine services.

Calculators, the step pipeline evaluator, determinism validation, the rate
program version lifecycle and the computation offload channel.
"""

from .calculators import ExperienceModCalculator, ILFCalculator, ScheduleRatingCalculator
from .determinism import DeterminismValidator, validate_determinism
from .hashing import hash_steps
from .offload import RatingComputationChannel
from .rating_engine import RatingEngine
from .store import InMemoryRateProgramStore, RateProgramStore
from .version_manager import VersionLifecycleManager
from .worker import handle_message

__all__ = [
    "DeterminismValidator",
    "ExperienceModCalculator",
    "ILFCalculator",
    "InMemoryRateProgramStore",
    "RateProgramStore",
    "RatingComputationChannel",
    "RatingEngine",
    "ScheduleRatingCalculator",
    "VersionLifecycleManager",
    "handle_message",
    "hash_steps",
    "validate_determinism",
]
