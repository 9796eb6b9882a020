"""anamnesis: spaced-repetition scheduling and mastery tracking."""

from anamnesis.consts import VERSION

__version__ = VERSION
