"""
Agents used by the call relay runtime.

For now there is a single CallAgent that:

- receives a Session + caller input
- talks to the chat upstream with the session's history
- updates history and voices the reply
"""
