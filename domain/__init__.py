"""Pure domain model: entities, validation and the pipeline rules engine."""
