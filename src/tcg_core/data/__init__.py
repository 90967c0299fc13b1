"""Card data models and catalog collaborators."""
