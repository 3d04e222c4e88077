"""
The `users` resource: schemas, raw-SQL repository, service and router.
"""
