# PolicyCore - Policy Decision Management System
# Copyright (C) 2025 Luiz Frias <luizf35@gmail.com>
# Form F[x] Labs
#
# This software is dual-licensed under AGPL-3.0 and Commercial License.
# For commercial licensing, contact: luizf35@gmail.com
# See LICENSE file for full terms.

"""Determinism validation for rate program steps.

Static checks run before a version may be published. Errors block publish;
warnings are reported and persisted as a count on the published version.
"""

import logging
import re
from collections import defaultdict
from collections.abc import Iterable, Sequence

from beartype import beartype

from ...models.rate_program import FieldCode
from ...models.rating_step import (
    BaseRateStep,
    ConditionalStep,
    ExpModStep,
    ILFStep,
    LookupStep,
    MultiplyStep,
    RatingStep,
)
from ...schemas.validation import (
    DeterminismIssue,
    DeterminismIssueCode,
    DeterminismValidationResult,
)
from .calculators import ILFCalculator
from .conditions import SUPPORTED_OPERATORS, parse_condition

logger = logging.getLogger(__name__)

_SEPARATORS = re.compile(r"[\s_\-.]+")


def _normalize(code: str) -> str:
    return _SEPARATORS.sub("", code).lower()


def _step_name(step: RatingStep) -> str:
    label = getattr(step.config, "label", None)
    return label or step.id


class DeterminismValidator:
    """Check steps against the field codes available to a rate program.

    ``available_field_codes`` accepts plain codes or ``FieldCode`` entries
    carrying deprecation metadata.
    """

    @beartype
    def __init__(self, available_field_codes: Iterable[str | FieldCode] = ()) -> None:
        self._fields: dict[str, FieldCode] = {}
        for entry in available_field_codes:
            field = FieldCode(code=entry) if isinstance(entry, str) else entry
            self._fields.setdefault(field.code, field)

        self._by_normalized: dict[str, list[str]] = defaultdict(list)
        for code in self._fields:
            self._by_normalized[_normalize(code)].append(code)

    @beartype
    def validate(self, steps: Sequence[RatingStep]) -> DeterminismValidationResult:
        """Run every check over ``steps`` and collect the issues found."""
        errors: list[DeterminismIssue] = []
        warnings: list[DeterminismIssue] = []

        errors.extend(self._duplicate_ids(steps))
        warnings.extend(self._duplicate_orders(steps))

        for step in steps:
            errors.extend(self._config_issues(step))

            missing: list[str] = []
            for code in self._referenced_codes(step):
                field = self._fields.get(code)
                if field is None:
                    if code not in missing:
                        missing.append(code)
                    continue
                warnings.extend(self._field_warnings(step, field))

            if missing:
                errors.append(self._undefined_fields(step, missing))

        result = DeterminismValidationResult(errors=errors, warnings=warnings)
        logger.info(
            "Determinism validation of %d steps: %d errors, %d warnings",
            len(steps),
            len(errors),
            len(warnings),
        )
        return result

    @staticmethod
    def _referenced_codes(step: RatingStep) -> list[str]:
        """Field codes a step reads from the risk factors."""
        if isinstance(step, MultiplyStep):
            code = step.config.factor_key
        elif isinstance(step, LookupStep):
            code = step.config.lookup_key
        elif isinstance(step, BaseRateStep):
            code = step.config.exposure_key
        elif isinstance(step, ConditionalStep):
            condition = parse_condition(step.config.condition)
            code = condition.factor_key if condition is not None else None
        elif isinstance(step, ExpModStep):
            # The default key is only a fallback and need not be defined.
            explicit = "factor_key" in step.config.model_fields_set
            code = step.config.factor_key if explicit else None
        else:
            code = None
        return [code] if code else []

    @staticmethod
    def _config_issues(step: RatingStep) -> list[DeterminismIssue]:
        name = _step_name(step)

        def missing(key: str) -> DeterminismIssue:
            return DeterminismIssue(
                code=DeterminismIssueCode.MISSING_CONFIG,
                message=f'Step "{name}" ({step.type}) is missing required config "{key}"',
                step_ids=[step.id],
            )

        if isinstance(step, MultiplyStep) and not step.config.factor_key:
            return [missing("factorKey")]
        if isinstance(step, LookupStep) and not step.config.lookup_key:
            return [missing("lookupKey")]
        if isinstance(step, ConditionalStep):
            if not step.config.condition:
                return [missing("condition")]
            if parse_condition(step.config.condition) is None:
                return [
                    DeterminismIssue(
                        code=DeterminismIssueCode.INVALID_CONDITION,
                        message=(
                            f'Step "{name}" has invalid condition '
                            f'"{step.config.condition}"; expected '
                            f'"<factorKey> <operator> <number>" with operator '
                            f"one of {', '.join(SUPPORTED_OPERATORS)}"
                        ),
                        step_ids=[step.id],
                    )
                ]
        if isinstance(step, ILFStep):
            if not step.config.table:
                return [missing("table")]
            basic_factor = ILFCalculator.interpolate_factor(
                step.config.table, step.config.basic_limit
            )
            if basic_factor == 0:
                return [
                    DeterminismIssue(
                        code=DeterminismIssueCode.ZERO_BASIC_FACTOR,
                        message=(
                            f'Step "{name}" ILF table has factor 0 at basic limit '
                            f"{step.config.basic_limit:g}"
                        ),
                        step_ids=[step.id],
                    )
                ]
        return []

    def _field_warnings(
        self, step: RatingStep, field: FieldCode
    ) -> list[DeterminismIssue]:
        name = _step_name(step)
        warnings = []

        if field.deprecated:
            message = f'Step "{name}" uses deprecated field "{field.code}"'
            if field.replaced_by:
                message += f'; use "{field.replaced_by}" instead'
            warnings.append(
                DeterminismIssue(
                    code=DeterminismIssueCode.DEPRECATED_FIELD,
                    message=message,
                    step_ids=[step.id],
                    field_codes=[field.code],
                )
            )

        lookalikes = [
            code
            for code in self._by_normalized[_normalize(field.code)]
            if code != field.code
        ]
        if lookalikes:
            quoted = ", ".join(f'"{code}"' for code in lookalikes)
            warnings.append(
                DeterminismIssue(
                    code=DeterminismIssueCode.AMBIGUOUS_FIELD,
                    message=(
                        f'Step "{name}" references "{field.code}", which differs '
                        f"only by case or separators from {quoted}"
                    ),
                    step_ids=[step.id],
                    field_codes=[field.code, *lookalikes],
                )
            )
        return warnings

    def _undefined_fields(
        self, step: RatingStep, missing: list[str]
    ) -> DeterminismIssue:
        described = []
        for code in missing:
            suggestion = self._suggest(code)
            if suggestion:
                described.append(f'{code} (did you mean "{suggestion}"?)')
            else:
                described.append(code)
        return DeterminismIssue(
            code=DeterminismIssueCode.UNDEFINED_FIELD,
            message=(
                f'Step "{_step_name(step)}" references undefined fields: '
                f"{', '.join(described)}"
            ),
            step_ids=[step.id],
            field_codes=missing,
        )

    def _suggest(self, code: str) -> str | None:
        """Closest available code ignoring case, then ignoring separators too."""
        lowered = code.lower()
        for candidate in self._fields:
            if candidate.lower() == lowered:
                return candidate
        candidates = self._by_normalized.get(_normalize(code))
        return candidates[0] if candidates else None

    @staticmethod
    def _duplicate_ids(steps: Sequence[RatingStep]) -> list[DeterminismIssue]:
        counts: dict[str, int] = defaultdict(int)
        for step in steps:
            counts[step.id] += 1
        return [
            DeterminismIssue(
                code=DeterminismIssueCode.DUPLICATE_STEP_ID,
                message=f'Step id "{step_id}" is used by {count} steps',
                step_ids=[step_id],
            )
            for step_id, count in counts.items()
            if count > 1
        ]

    @staticmethod
    def _duplicate_orders(steps: Sequence[RatingStep]) -> list[DeterminismIssue]:
        by_order: dict[int, list[str]] = defaultdict(list)
        for step in steps:
            by_order[step.order].append(step.id)
        return [
            DeterminismIssue(
                code=DeterminismIssueCode.DUPLICATE_ORDER,
                message=(
                    f"Steps {', '.join(step_ids)} share order {order}; "
                    "they run in insertion order"
                ),
                step_ids=step_ids,
            )
            for order, step_ids in sorted(by_order.items())
            if len(step_ids) > 1
        ]


@beartype
def validate_determinism(
    steps: Sequence[RatingStep],
    available_field_codes: Iterable[str | FieldCode] = (),
) -> DeterminismValidationResult:
    """Validate ``steps`` against ``available_field_codes``."""
    return DeterminismValidator(available_field_codes).validate(steps)
