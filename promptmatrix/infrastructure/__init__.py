from .file_cache import FileCache
from .settings import Settings
from .traits import TraitLibrary
from .yaml_suite_loader import LoadedSuite, YamlSuiteLoader, YamlSuiteLoaderError

__all__ = [
    "FileCache",
    "LoadedSuite",
    "Settings",
    "TraitLibrary",
    "YamlSuiteLoader",
    "YamlSuiteLoaderError",
]
