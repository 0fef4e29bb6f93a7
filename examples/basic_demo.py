"""Example usage of Agent with math tools and a delegated specialist."""
import asyncio

from agent_cycle import Agent, agent_as_tool, tool


@tool
def add(a: float, b: float) -> str:
    """Add two numbers.

    Args:
        a: First operand
        b: Second operand
    """
    return str(a + b)


@tool
def multiply(a: float, b: float) -> str:
    """Multiply two numbers.

    Args:
        a: First operand
        b: Second operand
    """
    return str(a * b)


@tool
def subtract(a: float, b: float) -> str:
    """Subtract b from a.

    Args:
        a: Number to subtract from
        b: Number to subtract
    """
    return str(a - b)


def make_checker() -> Agent:
    return Agent(
        system_prompt="You double-check arithmetic. Answer with the verified result only.",
        tools=[add, multiply, subtract],
        callback_handler=None,
        name="checker",
    )


async def main():
    """Example usage of Agent with math tools."""
    print("=" * 80)
    print("Agent Cycle - Math Tools Example")
    print("=" * 80)

    checker = agent_as_tool(
        name="arithmetic_checker",
        description="Independently verifies an arithmetic result",
        agent_factory=make_checker,
    )
    agent = Agent(
        system_prompt=(
            "You are a helpful assistant that can perform mathematical calculations. "
            "Use the available tools to solve math problems, then verify the result."
        ),
        tools=[add, multiply, subtract, checker],
        max_parallel_tools=4,
        callback_handler=None,
        name="calculator",
    )

    test_prompt = "Calculate (15 + 27) * 3 - 8. Show your work step by step."

    print(f"\nUser Query: {test_prompt}\n")
    print("Agent Response:")
    print("-" * 80)

    result = None
    async for event in agent.stream_async(test_prompt):
        if "data" in event:
            print(event["data"], end="", flush=True)
        elif "tool_execution_start" in event:
            print(f"\n[tool] {event['tool_use'].name}({event['tool_use'].input})", flush=True)
        elif "throttling_error" in event:
            print(f"\n[throttled] retrying in {event['retry_in']}s", flush=True)
        elif "result" in event:
            result = event["result"]

    print("\n" + "-" * 80)
    print("\n✓ Agent completed successfully")
    print(f"  Total messages in conversation: {len(agent.messages)}")
    print(f"  Cycles: {result.metrics.cycles}")
    print(f"  Tool executions: {result.metrics.tool_executions}")
    print(f"  Final stop reason: {result.stop_reason}")
    print(f"  Token usage: {result.metrics.total_tokens}")

    print("\nConversation Summary:")
    for i, message in enumerate(agent.messages, 1):
        if message.tool_results:
            print(f"  {i}. [Tool Results] {len(message.tool_results)} tool result(s)")
        elif message.tool_uses:
            print(f"  {i}. [Assistant] Used {len(message.tool_uses)} tool(s)")
        elif message.role == "user":
            preview = message.text[:60] + "..." if len(message.text) > 60 else message.text
            print(f"  {i}. [User] {preview}")
        else:
            print(f"  {i}. [Assistant] Final response")

    print("\n" + "=" * 80)


if __name__ == "__main__":
    asyncio.run(main())
