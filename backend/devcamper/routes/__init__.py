# Routes package init
"""
DevCamper Backend — API Routes Package
=======================================

Route Inventory:
    - bootcamps.py:  /api/v1/bootcamps, /api/v1/bootcamps/{id},
                     /api/v1/bootcamps/radius/{zipcode}/{distance}
    - courses.py:    /api/v1/courses, /api/v1/courses/{id},
                     /api/v1/bootcamps/{id}/courses
    - auth.py:       /api/v1/auth/register, /api/v1/auth/login, /api/v1/auth/me
    - health.py:     /health

Routes stay thin: extract input, call a service, wrap the result.
"""
