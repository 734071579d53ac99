import logging
import sys
from pathlib import Path

from microcrm.core.config import settings

handlers: list[logging.Handler] = [logging.StreamHandler(sys.stdout)]
if settings.log_file:
    log_path = Path(settings.log_file)
    log_path.parent.mkdir(parents=True, exist_ok=True)
    handlers.append(logging.FileHandler(log_path, encoding="utf-8"))

logging.basicConfig(
    level=settings.log_level.upper(),
    format='%(asctime)s %(levelname)s %(name)s %(message)s',
    handlers=handlers,
)

logger = logging.getLogger('microcrm')
