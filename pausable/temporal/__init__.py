"""Temporal host engine: workflow, activities, interceptor and worker."""
