"""
Auth Service package for the MOV Event Platform.

Registers users, checks their credentials and issues the signed bearer
tokens the gateway verifies. Profile and verify endpoints read the caller
identity the gateway forwards; they never decode tokens themselves.

- app.main: Application entrypoint that wires routes.
- app.users: Account models, password hashing and the user store.
- app.tokens: Credential issuing.
"""
