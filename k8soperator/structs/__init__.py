"""
All the data structures of the operator and the functions to manipulate them.

All the functions are purely data-manipulative and computational.
No external calls or any i/o activities are done here.
"""
