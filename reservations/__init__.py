"""Slot reservation and pricing core.

Modules, leaf first: ``timeslots`` (hour slots and overlap), ``pricing``,
``availability``, ``locks`` and ``commit``. ``store`` is the persistence
service they share and ``clock`` the injectable source of "now".
"""
