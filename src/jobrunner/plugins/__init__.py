# plugins/__init__.py
# Bundled plugins. Each module registers itself with the default capability
# registry when imported; see jobrunner.registry.load_builtin_plugins().
