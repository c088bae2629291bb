"""Game domain: answer matching, the round state machine and the session engine.

Nothing in this package touches Flask, the database or Socket.IO; HTTP
routes and socket handlers import from here and take care of transport and
storage themselves.
"""
