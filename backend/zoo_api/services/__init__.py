"""
Zoo API — Services Layer
==========================

What:  Business logic between the routes and the database.

Service Inventory:
    - rules:              pure functions (VIP tiers, aggregates, ticket ids,
                          occupancy, schedule dates, zoo-local "today")
    - ExhibitService:     exhibits and the animal capacity guard
    - AnimalService:      animal catalogue, moves, retirement
    - HealthService:      veterinary records and the health-check schedule
    - FeedingService:     feeding schedule and completion
    - VisitorService:     visitor profiles, visit history and aggregates
    - TicketService:      ticket issuance, gate validation, refunds
    - StaffService:       staff directory
    - AuthService:        accounts, bcrypt hashing, JWT, login lockout
    - AnalyticsService:   cached dashboard numbers
    - ReportService:      report builders and lifecycle; ReportStorage
                          writes the JSON exports
    - MailService:        abstract mail collaborator; SmtpMailService
                          delivers through SMTP behind a circuit breaker

Services only flush. The request's session dependency commits or rolls
back once the route returns.
"""
