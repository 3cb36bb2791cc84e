"""
Zoo API — Route Handlers
==========================

What:  HTTP surface of the API, all under /api.

Route Inventory:
    auth.py            /api/auth/*          register, login, profile, users
    animals.py         /api/animals/*       catalogue, medical, feeding
    exhibits.py        /api/exhibits/*      exhibits, assignment, inspections
    visitors.py        /api/visitors/*      profiles, visits, purchases
    tickets.py         /api/tickets/*       sales, gate validation, refunds
    health_records.py  /api/health-records/*
    feedings.py        /api/feedings/*
    staff.py           /api/staff/*
    reports.py         /api/reports/*, /api/analytics/dashboard
    health.py          /api/health          service health probe

Routes stay thin: parse the request, check the caller's role, call a
service, wrap the result in the ApiResponse envelope.
"""
