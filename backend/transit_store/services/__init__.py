"""
Transit Store Backend - Services Layer
========================================

What:  Business logic between the routes (HTTP) and the storage adapter.
How:   Services receive their collaborators in the constructor and are built
       per request by the providers in transit_store.dependencies.

Service Inventory:
    - TransitClient (abstract): interface for a remote encryption oracle
    - VaultTransitClient: Vault transit engine over HTTP (httpx)
    - RecordService: encrypt-then-insert and select-then-decrypt for /data
    - FolderService: folders and their projects, restrict-on-delete
"""
