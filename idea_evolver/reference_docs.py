"""
Technology reference snippets injected into generation prompts.

Lookups never fail: an unknown (backend, unit) pair or framework yields a
neutral placeholder string.
"""

from typing import Iterable, List, Optional

from .storage import DocumentationSource

NO_DOCUMENTATION = "No specific documentation provided for this task."
NO_GUIDELINES = "No specific guidelines available for this framework."

BACKEND_DOCS = {
    ("Convex", "DBSchemaAgent"): """
**Core Concept:** Define your database schema using `defineSchema` and `defineTable`.
**Validators (v):** Use validators like `v.string()`, `v.number()`, `v.boolean()`, `v.id("tableName")` for relations.
**Indexes:** Define indexes for efficient queries using `.index("by_field", ["fieldName"])`.
**Example Structure:**
  - users
    - name: string
    - email: string (indexed)
  - messages
    - body: string
    - userId: id("users") (indexed)
""",
    ("Convex", "APIEndpointAgent"): """
**Types:**
  - **Queries (`query`):** For reading data.
  - **Mutations (`mutation`):** For writing data.
**Context (ctx):** The first argument. Use `ctx.db` for database access, `ctx.auth` for user identity.
**Example API Plan:**
  - **Queries:**
    - `listMessages`: Fetches all messages, joining with user info.
  - **Mutations:**
    - `sendMessage(body: string)`: Creates a new message linked to the logged-in user.
""",
    ("Firebase", "DBSchemaAgent"): """
**Concept:** NoSQL database (Firestore). Data is stored in documents, organized into collections.
**Structure:** Plan collections and the fields within documents.
**Example Structure:**
  - /users/{userId}
    - name: string
    - email: string
  - /messages/{messageId}
    - text: string
    - timestamp: serverTimestamp
    - authorId: string (reference to userId)
""",
    ("Firebase", "APIEndpointAgent"): """
**Concept:** Use Cloud Functions for backend logic.
**Triggers:** HTTP triggers for callable functions, or Firestore triggers for reactive logic.
**Example API Plan:**
  - **HTTP Functions:**
    - `getMessages`: Fetches the last N messages from the 'messages' collection.
    - `postMessage(text: string)`: Creates a new document in the 'messages' collection.
""",
    ("Supabase", "DBSchemaAgent"): """
**Concept:** Uses a standard PostgreSQL database. Plan your tables, columns, and relationships.
**Example Structure:**
  - Table: "profiles"
    - id: uuid (primary key, references auth.users.id)
    - username: text
  - Table: "todos"
    - id: bigint (primary key)
    - task: text
    - is_complete: boolean (default: false)
    - user_id: uuid (foreign key to profiles.id)
""",
    ("Supabase", "APIEndpointAgent"): """
**Concept:** Interact with the database via the client library or create serverless Edge Functions.
**Example API Plan:**
  - **Direct DB Access:**
    - `select('todos', '*')`: Get all todos for the user.
    - `insert('todos', { task, user_id })`: Create a new todo.
  - **Edge Functions:**
    - `/get-todos`: A GET request function that fetches todos for the authenticated user.
""",
}

FRAMEWORK_GUIDELINES = {
    "React": """
**React Best Practices:**
- Use functional components with hooks
- Implement proper component composition
- Separate business logic into custom hooks
- Use context for global state management
- Consider performance with React.memo, useMemo, useCallback

**Component Structure:**
- Atomic Design: Atoms -> Molecules -> Organisms -> Templates -> Pages
- Feature-based organization for larger apps
- Shared components in common/ or ui/ directories
""",
    "Vue": """
**Vue.js Best Practices:**
- Use Composition API for complex logic
- Implement proper component communication
- Use provide/inject for dependency sharing
- Consider component lifecycle management
- Use Vue Router for page components

**Component Structure:**
- Single File Components (.vue)
- Feature-based organization
""",
    "Svelte": """
**Svelte Best Practices:**
- Leverage Svelte's reactivity system
- Use stores for global state management
- Implement proper component lifecycle
- Consider SvelteKit for full-stack features

**Component Structure:**
- Single File Components (.svelte)
- Feature-based organization
- Stores for shared state
""",
}


def backend_documentation(backend: str, unit: str) -> Optional[str]:
    snippet = BACKEND_DOCS.get((backend, unit))
    if snippet is None:
        return None
    return f"--- {backend.upper()} DOCUMENTATION ---\n{snippet}"


def framework_guidelines(framework: str) -> str:
    return FRAMEWORK_GUIDELINES.get(framework, NO_GUIDELINES)


def lookup_documentation(
    backend: str,
    unit: str,
    custom_sources: Iterable[DocumentationSource] = (),
) -> str:
    """Built-in snippet for (backend, unit) plus any selected custom sources."""
    blocks: List[str] = []

    builtin = backend_documentation(backend, unit)
    if builtin:
        blocks.append(builtin)

    for source in custom_sources:
        blocks.append(f'--- CUSTOM DOCUMENTATION: "{source.title}" ---\n{source.content}')

    return "\n\n".join(blocks) if blocks else NO_DOCUMENTATION
