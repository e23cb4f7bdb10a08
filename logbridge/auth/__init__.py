from .decorators import login_required, permission_required

# Permissions checked by the routes
AWS_READ = 'aws:read'
INPUTS_CREATE = 'inputs:create'
INPUTS_READ = 'inputs:read'

__all__ = ['login_required', 'permission_required', 'AWS_READ', 'INPUTS_CREATE', 'INPUTS_READ']
