import logging
import os
from pathlib import Path
from typing import Optional, Union

from capital_curve_app.schemas import CurveConfig


logger = logging.getLogger(__name__)

CONFIG_ENV_VAR = "CAPITAL_CURVE_CONFIG"


def load_curve_config(path: Optional[Union[str, Path]] = None) -> CurveConfig:
    """Read the curve parameters from a JSON file, or use the defaults.

    The path comes from the argument or the CAPITAL_CURVE_CONFIG environment
    variable. Invalid files raise pydantic's ValidationError.
    """
    path = path or os.environ.get(CONFIG_ENV_VAR)
    if not path:
        return CurveConfig()

    config = CurveConfig.model_validate_json(Path(path).read_text(encoding="utf-8"))
    logger.info("Loaded curve config from %s", path)
    return config
