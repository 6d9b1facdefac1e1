# infrastructure/config/env_provider.py
from __future__ import annotations

import os
from pathlib import Path
from typing import Dict, Optional, Union

from dotenv import dotenv_values


class EnvProvider:
    """
    Values for ${NAME} placeholders in config files.

    .env の値が環境変数より優先される
    """

    def __init__(self, env_path: Optional[Union[str, Path]] = None):
        self._values: Dict[str, str] = {}
        path = Path(env_path) if env_path is not None else Path.cwd() / ".env"
        if path.exists():
            self._values.update({k: v for k, v in dotenv_values(path).items() if v is not None})

        for key, value in os.environ.items():
            if key not in self._values:
                self._values[key] = value

    def get(self) -> Dict[str, str]:
        return dict(self._values)
