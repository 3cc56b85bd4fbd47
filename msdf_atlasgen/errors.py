"""Exceptions raised while building an atlas."""


class AtlasError(ValueError):
    """Base class for every fatal atlas build failure."""


class SettingsError(AtlasError):
    """A configuration value could not be parsed or is out of range."""


class CollaboratorUnavailable(AtlasError):
    """The font (or another external resource) could not be opened."""


class NoGlyphsCollected(AtlasError):
    """The configured ranges produced no glyph with visible ink."""


class PackingInfeasible(AtlasError):
    """The glyph footprints do not fit into the configured texture."""
