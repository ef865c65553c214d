"""对话编排层：会话 (session)、引用来源抽取 (grounding) 与状态机 (orchestrator)。"""
