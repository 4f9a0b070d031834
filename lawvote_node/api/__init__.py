"""HTTP routers for the lawvote node."""
