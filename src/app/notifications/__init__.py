"""In-app notifications -- model, schemas, repository, and the best-effort notifier."""
