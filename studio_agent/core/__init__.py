"""
Studio Agent Core - conversation engine pipeline.

1. CONVERSATION (conversation.py)
   - ConversationTurn history entries, tool requests and results

2. STREAM ASSEMBLER (stream_assembler.py)
   - SSE line framing over arbitrary byte fragments
   - Folds deltas into content, reasoning and indexed tool calls

3. TOOL SEQUENCER (tool_sequencer.py)
   - Executes one turn's tool calls strictly in order

4. ENGINE (engine.py)
   - Idle/Processing state machine, rounds, cancellation

Main entrypoint: ConversationEngine from engine.py
"""
