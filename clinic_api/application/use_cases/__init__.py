"""Application use cases grouped by feature (``notifications``, ``analytics``)."""
