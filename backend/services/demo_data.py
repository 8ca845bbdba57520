"""
Sample career records replayed by the demo simulator.
"""

from typing import List

from schemas.career import InterviewQuestion, InterviewTopic, Job, Match, SkillGap

DEMO_MODEL = "qwen2.5-coder:14b"

DEMO_JOBS: List[Job] = [
    Job(
        id="demo-job-anthropic-staff",
        title="Staff Software Engineer, AI Platform",
        company="Anthropic",
        location="San Francisco, CA",
        remote=False,
        description="Build the platform that serves and evaluates large language models for internal research and external customers.",
        salary_min=250000,
        salary_max=400000,
        skills=["Python", "TypeScript", "Distributed Systems", "Kubernetes", "ML Infrastructure"],
        requirements=[
            "8+ years building production systems",
            "Experience operating large distributed services",
            "Track record of technical leadership across teams",
        ],
        experience_level="lead",
        employment_type="full-time",
    ),
    Job(
        id="demo-job-stripe-frontend",
        title="Senior Frontend Engineer",
        company="Stripe",
        location="Remote (US)",
        remote=True,
        description="Own high-traffic surfaces of the Stripe Dashboard, from real-time payment views to the shared component library.",
        salary_min=200000,
        salary_max=320000,
        skills=["TypeScript", "React", "Design Systems", "Web Performance", "Accessibility"],
        requirements=[
            "5+ years of frontend engineering",
            "Deep React and TypeScript experience",
            "Shipped and maintained a component library",
        ],
        experience_level="senior",
        employment_type="full-time",
    ),
    Job(
        id="demo-job-vercel-growth",
        title="Full-Stack Engineer, Growth",
        company="Vercel",
        location="Remote",
        remote=True,
        description="Run experiments across onboarding and billing flows, end to end from Next.js pages to Node.js services.",
        salary_min=180000,
        salary_max=280000,
        skills=["Next.js", "React", "Node.js", "TypeScript", "Experimentation"],
        requirements=[
            "4+ years of full-stack development",
            "Comfort owning features from UI to database",
            "Data-driven approach to product work",
        ],
        experience_level="senior",
        employment_type="full-time",
    ),
]

DEMO_MATCHES: List[Match] = [
    Match(
        job_id="demo-job-stripe-frontend",
        job_title="Senior Frontend Engineer",
        overall_score=92,
        skill_match_score=95,
        experience_match_score=90,
        education_match_score=85,
        culture_fit_score=92,
        skill_gaps=[
            SkillGap(
                skill="Accessibility",
                required=True,
                profile_level="intermediate",
                required_level="advanced",
                gap_severity="minor",
                suggestion="Audit one of your existing components against WCAG 2.1 AA and write up the fixes.",
            ),
        ],
        strengths=[
            "Six years of React and TypeScript",
            "Built and maintained a shared component library",
            "Shipped a real-time dashboard used by 50K users",
        ],
        reasoning="Frontend depth and dashboard experience line up directly with the role; accessibility is the only notable gap.",
    ),
    Match(
        job_id="demo-job-vercel-growth",
        job_title="Full-Stack Engineer, Growth",
        overall_score=88,
        skill_match_score=90,
        experience_match_score=85,
        education_match_score=85,
        culture_fit_score=90,
        skill_gaps=[
            SkillGap(
                skill="Experimentation",
                required=True,
                profile_level="beginner",
                required_level="intermediate",
                gap_severity="moderate",
                suggestion="Run an A/B test on a side project and learn the basics of statistical significance.",
            ),
        ],
        strengths=[
            "Full-stack TypeScript across React and Node.js",
            "Comfortable owning features end to end",
        ],
        reasoning="Strong full-stack alignment; growth experimentation experience would make this an even closer fit.",
    ),
    Match(
        job_id="demo-job-anthropic-staff",
        job_title="Staff Software Engineer, AI Platform",
        overall_score=78,
        skill_match_score=75,
        experience_match_score=80,
        education_match_score=85,
        culture_fit_score=82,
        skill_gaps=[
            SkillGap(
                skill="Distributed Systems",
                required=True,
                profile_level="intermediate",
                required_level="expert",
                gap_severity="major",
                suggestion="Study consensus and replication, then lead a service decomposition at work.",
            ),
            SkillGap(
                skill="ML Infrastructure",
                required=True,
                profile_level="beginner",
                required_level="advanced",
                gap_severity="moderate",
                suggestion="Deploy and monitor a model-serving stack (for example vLLM on Kubernetes).",
            ),
        ],
        strengths=[
            "Proven technical leadership",
            "Solid Python backend experience",
            "Interest in AI tooling",
        ],
        reasoning="High potential, but the role expects deeper distributed systems and ML infrastructure experience.",
    ),
]

DEMO_INTERVIEW_TOPICS: List[InterviewTopic] = [
    InterviewTopic(
        title="System Design: Real-time Dashboard",
        category="technical",
        difficulty="hard",
        questions=[
            InterviewQuestion(
                question="How would you design a real-time payment dashboard that serves 50K concurrent users with live transaction updates?",
                tip="Pin down latency and update-frequency requirements first, then compare WebSockets and SSE, pub/sub fan-out and pre-aggregation.",
            ),
            InterviewQuestion(
                question="How do you keep the dashboard consistent with the payment processing pipeline?",
                tip="Talk through eventual versus strong consistency, CQRS or event sourcing, and how the UI shows stale data honestly.",
            ),
            InterviewQuestion(
                question="How would you keep filtering and search fast over millions of transactions?",
                tip="Cover virtualization, cursor pagination, indexing and caching, and tie it back to dashboards you have built.",
            ),
        ],
    ),
    InterviewTopic(
        title="React & Performance Deep Dive",
        category="technical",
        difficulty="medium",
        questions=[
            InterviewQuestion(
                question="How do you find and fix unnecessary re-renders in a large React application?",
                tip="Mention the React profiler, memoization (memo, useMemo, useCallback) and code splitting, with a concrete before/after.",
            ),
            InterviewQuestion(
                question="How would you build a component library that supports theming, accessibility and tree-shaking?",
                tip="Draw on your own library: composition patterns, design tokens, ARIA attributes and ESM builds.",
            ),
            InterviewQuestion(
                question="How would you render a 100K-row table that receives live updates without scroll jank?",
                tip="Explain windowing, dynamic row heights and batching updates outside the render path.",
            ),
        ],
    ),
    InterviewTopic(
        title="Leadership & Cross-functional Collaboration",
        category="behavioral",
        difficulty="medium",
        questions=[
            InterviewQuestion(
                question="Tell me about a time you led a team through a difficult technical project.",
                tip="Use STAR and quantify the result, for example the collaboration feature that reached 50K users.",
            ),
            InterviewQuestion(
                question="Describe a hard technical trade-off you made and how you communicated it.",
                tip="Show how you weighed delivery speed against debt, involved stakeholders and revisited the decision.",
            ),
            InterviewQuestion(
                question="How do you mentor junior engineers while staying productive yourself?",
                tip="Reference mentoring four engineers (two promoted), structured reviews and pairing.",
            ),
        ],
    ),
]
