"""bbimport: queue-mediated import of external bibliographic records.

Producers parse external dumps into normalized entities and push them onto a
durable AMQP queue; consumers validate each entity and persist it as a pending
import, routing records that cannot be imported to a failure queue.
"""
