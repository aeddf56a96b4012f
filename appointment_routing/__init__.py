"""Appointment routing service: books callers with the nearest free field agent.

Architecture Overview
=====================

A call webhook (``POST /routing/{user_id}/{workspace_id}``) carries the
caller's phone number, a requested appointment time and the caller's zip
code.  The routing workflow then:

1. loads the workspace's routing agents (DynamoDB);
2. checks every agent's calendar concurrently: an agent qualifies only
   if it is free at the requested time *and* 30 minutes earlier (travel
   buffer);
3. asks Google Maps for the driving distance to each qualifying agent,
   again concurrently, and keeps the closest one;
4. finds the caller's CRM contact by phone number, creating it if needed;
5. books a 30-minute appointment on the chosen agent's calendar.

Key Design Decisions
--------------------
- **Systems of record are external**: calendars and contacts live in
  GoHighLevel, workspace configuration in DynamoDB.  Nothing is cached
  between requests, so every decision uses fresh availability.
- **Degrade, don't fail**: a calendar or distance lookup failing for one
  agent only removes that agent from consideration.
- **No retries**: every external call is made once, with a bounded
  timeout.  A replayed booking could double-book a slot that was checked
  but never locked.
- **Dual Interface**: FastAPI server (production) + CLI (development).

Package Structure
-----------------
- ``appointment_routing/config.py`` — Centralized configuration
- ``appointment_routing/models.py`` — Domain dataclasses
- ``appointment_routing/routing/`` — Selection, contact, booking, workflow
- ``appointment_routing/services/`` — GHL, Maps, DynamoDB and metrics clients
- ``appointment_routing/api/`` — FastAPI routes and Pydantic schemas
- ``appointment_routing/server.py`` — FastAPI application
- ``appointment_routing/main.py`` — CLI
"""
