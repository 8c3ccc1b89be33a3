"""
Configuration parameters for FundSplit.

Defines numeric precision, claim-set layout, operational limits and paths.
Values can be overridden from a dotenv file or FUNDSPLIT_* environment
variables.
"""

import os
from dataclasses import dataclass, fields
from pathlib import Path
from typing import Optional

from dotenv import load_dotenv


ENV_PREFIX = "FUNDSPLIT_"

# Word widths accepted for the claim bitmap
VALID_WORD_BITS = (32, 64, 128, 256)


@dataclass
class DistributionConfig:
    """Distribution-wide configuration parameters"""

    # Fixed-point percentages: 100% == 100 * percent_scale
    percent_scale: int = 1_000_000

    # Anti-replay bitmap
    claim_word_bits: int = 256  # Bits per packed word

    # Limits
    max_proof_length: int = 256  # Sibling digests accepted per proof
    max_batch_size: int = 1000  # Claims accepted per batch

    # Paths
    data_dir: Path = Path("data")
    log_dir: Path = Path("logs")
    db_name: str = "fundsplit.db"

    def __post_init__(self):
        self.data_dir = Path(self.data_dir)
        self.log_dir = Path(self.log_dir)
        if self.claim_word_bits not in VALID_WORD_BITS:
            raise ValueError(
                f"claim_word_bits must be one of {VALID_WORD_BITS}, got {self.claim_word_bits}"
            )
        if self.percent_scale <= 0:
            raise ValueError(f"percent_scale must be positive, got {self.percent_scale}")

    @property
    def db_path(self) -> Path:
        return self.data_dir / self.db_name


# Global config instance (can be overridden)
config = DistributionConfig()


def load_config(config_path: Optional[str] = None) -> DistributionConfig:
    """
    Load configuration from a dotenv file and the environment.

    Variables are named FUNDSPLIT_<FIELD>, e.g. FUNDSPLIT_CLAIM_WORD_BITS=64.

    Args:
        config_path: Optional path to a dotenv file

    Returns:
        DistributionConfig instance
    """
    if config_path:
        load_dotenv(config_path, override=False)
    else:
        load_dotenv(override=False)

    overrides = {}
    for f in fields(DistributionConfig):
        raw = os.environ.get(ENV_PREFIX + f.name.upper())
        if raw is None or raw == "":
            continue
        if f.type in (int, "int"):
            overrides[f.name] = int(raw)
        elif f.type in (Path, "Path"):
            overrides[f.name] = Path(raw).expanduser()
        else:
            overrides[f.name] = raw

    return DistributionConfig(**overrides)
