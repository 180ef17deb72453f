"""blog/ -- Posts, likes, comments and the notifications they raise.

Layer rule: blog/ imports only stdlib, third-party libraries and core/.
Author details are joined in by the API layer via auth/, never from here.
"""
