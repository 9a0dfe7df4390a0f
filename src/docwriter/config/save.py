"""Write pipeline defaults."""

from __future__ import annotations

from dataclasses import dataclass

from docwriter.domain.model import AutoTransactionBehavior

from .env import env_choice

AUTO_TRANSACTION_ENV = "DOCWRITER_AUTO_TRANSACTION"


@dataclass(frozen=True, slots=True)
class SaveConfig:
    auto_transaction: AutoTransactionBehavior = AutoTransactionBehavior.WHEN_NEEDED


def get_save_config() -> SaveConfig:
    value = env_choice(
        AUTO_TRANSACTION_ENV,
        [behavior.value for behavior in AutoTransactionBehavior],
        default=AutoTransactionBehavior.WHEN_NEEDED.value,
    )
    return SaveConfig(auto_transaction=AutoTransactionBehavior(value))
