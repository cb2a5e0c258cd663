"""chronoverify - forensic chronolocation of user-submitted images.

An image goes through a five-phase LLM pipeline (clue extraction, grounded
geolocation, satellite imagery lookup, shadow/lighting time analysis and
report synthesis) and comes out as a structured verification report.

Components:
- main_proxy: credential proxy in front of the Copernicus catalogue
- main_verify: command-line front end (reasoning log + report)
- pipeline: phase orchestration and per-session state
- llm: completion client and phase prompts
- satellite: catalogue client, token cache, imagery client
- rendering: Markdown rendering of the log and report
- mlops: optional MLflow tracing
"""
