from dataclasses import dataclass

from server.core.prompts import AUTHENTICATED_PROMPT, GATED_MESSAGE, UNAUTHENTICATED_PROMPT

UNAUTHENTICATED_TOOLS: tuple[str, ...] = ("signUp", "signIn")
AUTHENTICATED_TOOLS: tuple[str, ...] = ("signOut", "createOrder", "getOrders", "searchDocs", "getDocContent", "listDocs")


@dataclass(frozen=True)
class Capability:
    """What the assistant may do for one request."""

    name: str
    description: str
    system_prompt: str
    tool_names: tuple[str, ...]
    invoke_model: bool = True
    static_message: str | None = None


AUTHENTICATION_ASSISTANT = Capability(
    name="Authentication Assistant",
    description="Guides guests through signing up or signing in to the employee portal",
    system_prompt=UNAUTHENTICATED_PROMPT,
    tool_names=UNAUTHENTICATED_TOOLS,
)

GATED_ASSISTANT = Capability(
    name="Authentication Assistant",
    description=AUTHENTICATION_ASSISTANT.description,
    system_prompt=UNAUTHENTICATED_PROMPT,
    tool_names=UNAUTHENTICATED_TOOLS,
    invoke_model=False,
    static_message=GATED_MESSAGE,
)

EMPLOYEE_ASSISTANT = Capability(
    name="Employee Assistant",
    description="Answers questions from the company knowledge base and manages sales orders",
    system_prompt=AUTHENTICATED_PROMPT,
    tool_names=AUTHENTICATED_TOOLS,
)


class CapabilityRegistry:
    """Maps the authentication state of a request to its capability.

    Resolution is a pure function of its arguments and is done per request.
    """

    def resolve(self, authenticated: bool, gated: bool = False) -> Capability:
        if authenticated:
            return EMPLOYEE_ASSISTANT
        return GATED_ASSISTANT if gated else AUTHENTICATION_ASSISTANT

    def describe(self, tool_descriptions: dict[str, str]) -> dict:
        """Return agent and tool metadata for clients.

        Args:
            tool_descriptions (dict[str, str]): Tool name -> description.

        Returns:
            dict: {"agents": [...], "tools": [...]}
        """
        agents = []
        tools = []
        for capability in (AUTHENTICATION_ASSISTANT, EMPLOYEE_ASSISTANT):
            agents.append({
                "name": capability.name,
                "description": capability.description,
                "tools": list(capability.tool_names),
            })
            for tool_name in capability.tool_names:
                tools.append({
                    "name": tool_name,
                    "description": tool_descriptions.get(tool_name, ""),
                    "agent": capability.name,
                })
        return {"agents": agents, "tools": tools}
