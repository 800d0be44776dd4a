"""refactor-core: analysis and safety checks behind automated Python refactorings."""

__version__ = "0.1.0"
