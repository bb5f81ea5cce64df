# All application routes are in v1/; /metrics and /health are also mounted
# unversioned by app.main for scrapers and load balancers.
