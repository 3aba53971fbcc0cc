"""Camp Attendance package.

Field workers punch in/out with a location fix and submit post-shift details;
admins review, filter and export the records. Organized by feature modules
(attendance, reports, users, geo, ...) with a thin Flask controller layer over
service/repository layers.
"""
