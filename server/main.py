from __future__ import annotations

import os

from dicebrain import DiceBrain, Settings, setup_logging
from dicebrain.server import create_app

settings = Settings.from_env()
setup_logging(settings.log_level, os.getenv("DICEBRAIN_LOG_FILE"))

# The server process owns the single brain instance it serves.
brain = DiceBrain(settings=settings)
app = create_app(brain, settings)
