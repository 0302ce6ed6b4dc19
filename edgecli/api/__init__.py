from .client import ApiClient
from .schemas import Service, Version, Papertrail, Openstack, Snippet

__all__ = ['ApiClient', 'Service', 'Version', 'Papertrail', 'Openstack', 'Snippet']
