"""Incremental gallery site index builder and change synchronizer."""

__version__ = "0.1.0-dev"

from .config import (
	AppConfig,
	RunState,
	ConfigError,
	ConfigFileError,
	MissingEnvError,
	build_run_state,
	load_app_config,
)
from .pipeline import GalleryError, RunReport, SiteIndexService
from .uploader import GallerySyncClient

__all__ = [
	"__version__",
	"AppConfig",
	"RunState",
	"ConfigError",
	"ConfigFileError",
	"MissingEnvError",
	"build_run_state",
	"load_app_config",
	"GalleryError",
	"RunReport",
	"SiteIndexService",
	"GallerySyncClient",
]
