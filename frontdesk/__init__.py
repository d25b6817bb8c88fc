"""Front-desk application for the ward console.

This package contains the pages, JSON endpoints and services that turn
the remote patient service into a dashboard, a patient directory, an
admission timeline and the add-patient wizard.
"""
