"""
Logging helpers.

Named loggers for the package plus ``log_error`` for operational problems
that should be recorded but never interrupt slot computation.
"""

import logging
from typing import Dict, Optional

_loggers: Dict[str, logging.Logger] = {}


def get_logger(name: str = "session_scheduling", level: Optional[int] = None) -> logging.Logger:
	"""
	Obtiene (o crea) un logger con nombre.

	Args:
		name: nombre del logger, normalmente __name__ del módulo
		level: nivel opcional; si no se indica se hereda de la configuración

	Returns:
		logging.Logger
	"""
	if name in _loggers:
		return _loggers[name]

	logger = logging.getLogger(name)
	if level is not None:
		logger.setLevel(level)

	_loggers[name] = logger
	return logger


def log_error(message: str, title: Optional[str] = None, name: str = "session_scheduling") -> None:
	"""
	Registra un error operacional con un título.

	Args:
		message: detalle del error
		title: título corto (ej. "Get Availability Slots")
		name: logger a usar
	"""
	if title:
		get_logger(name).error("%s: %s", title, message)
	else:
		get_logger(name).error("%s", message)
