"""
Redis HA Bootstrap

Startup topology resolution for a Redis replication group running on Rancher:
decides whether this container is the primary or a replica, then execs redis-server
(or redis-sentinel) with the matching arguments.
"""
