# Services package init
"""
DevCamper Backend — Services Layer
===================================

Service Inventory:
    - advanced_results: query-string → filter/select/sort/paginate over any
      collection that implements `find` + `count_documents`
    - collection: SQLAlchemy implementation of that collection protocol plus
      shared write helpers
    - GeocoderService (abstract) / MapQuestGeocoder: address → coordinates
    - BootcampService, CourseService, AuthService: resource business rules

Services receive the request's AsyncSession per call and never touch HTTP
objects, so they are tested without a running app.
"""
