from fastapi import Request
from watchlist_core.storage.gateway import StorageGateway


# Dependency to get the process-wide storage gateway created at startup
def get_storage(request: Request) -> StorageGateway:
    return request.app.state.storage
