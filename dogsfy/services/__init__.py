# Services package init
"""
Dogsfy Backend — Services Layer
=================================

What:  The partitioned storage core and the use cases built on it.

Service Inventory:
    - partitioning:      coordinate → partition tag, id prefix → partition tag
    - partition_store:   CRUD over one partition database
    - fanout:            scatter/gather with north-first tie-break
    - user_directory:    users across the north and south partitions
    - friendship_graph:  symmetric edges in the friends partition
    - account_service:   registration, profile CRUD, friend use cases
"""
