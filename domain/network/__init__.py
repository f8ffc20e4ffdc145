"""Sensor Network Bounded Context.

Responsible for the entities that drive the coverage field:
- Value Objects: Point3D, NetworkSnapshot
- Entities: Sensor, Link, AttenuationPoint
- Store: SensorNetwork (CRUD, cascade deletion of links)
"""
