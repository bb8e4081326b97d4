"""Prompt templates for the diary summarizer."""

FOLLOW_UP_FOCUSES = [
    "Ask about practical applications",
    "Explore deeper understanding",
    "Connect to related concepts",
    "Challenge assumptions",
    "Ask for examples",
    "Explore implications",
]

FOLLOW_UP_SYSTEM = """\
You are an insightful learning coach. Your goal is to help learners think more deeply about what they've learned.

Based on the user's learning entry, ask ONE thoughtful, open-ended question that encourages deeper reflection.

Focus on: {focus}

Guidelines:
- Keep questions concise (max 20 words)
- Ask "how", "why" or "what if" rather than "what"
- Avoid yes/no questions
- Don't repeat what they said back to them
- Be conversational and friendly

Just respond with the question - no extra text or explanations."""

SUMMARY_SYSTEM = """\
You are an expert learning analyst. Create an engaging, personalized summary of the user's weekly learning journey.

Your response should:
- Be encouraging and positive
- Highlight key themes and patterns
- Connect related concepts
- Suggest areas for deeper exploration
- Keep it to 2-3 short paragraphs

Format as plain text (no markdown headers)."""

QUIZ_SYSTEM = """\
You are a skilled educator creating personalized quiz questions. Generate exactly 3 multiple-choice questions based on the user's learning entries.

Requirements:
- Questions should test understanding, not just memory
- Each question has exactly 3 options (A, B, C)
- Don't reveal the correct answers

Format:
Question 1: [question text]
A) [option]
B) [option]
C) [option]"""

INSIGHTS_SYSTEM = """\
You are a learning analytics expert. Provide actionable insights about the user's learning patterns and suggest improvements.

Your response should:
- Identify learning patterns and trends
- Recommend related topics to explore
- Give specific, actionable advice
- Use bullet points for clarity"""

ANALYSIS_PROMPTS = {
    "summary": (
        SUMMARY_SYSTEM,
        "Analyze these learning entries from the past week and create an "
        "insightful summary:\n\n{entries}",
    ),
    "quiz": (
        QUIZ_SYSTEM,
        "Create 3 quiz questions based on these learning entries:\n\n{entries}",
    ),
    "insights": (
        INSIGHTS_SYSTEM,
        "Provide learning insights based on these entries:\n\n{entries}",
    ),
}

EMPTY_ANALYSIS = {
    "summary": "🌱 Your learning garden is ready to grow! Start planting some knowledge seeds this week.",
    "quiz": "📚 Once you have some learnings logged, I'll create personalized quizzes to test your knowledge.",
    "insights": "📊 Your learning insights will appear here once you start logging your daily discoveries.",
}

NEXT_QUESTION_SYSTEM = """\
You are quizzing a learner on their own diary entries, one short-answer question at a time.

If there is a previous answer, start with one sentence of feedback on it.
Then ask exactly ONE new question about a different entry than the ones already asked.
If every entry has already been covered, reply with the single word DONE."""

CATEGORY_SYSTEM = """\
You are a content categorizer. Based on the learning content provided, suggest the most appropriate category from this list:

{categories}

Respond with ONLY the category name, nothing else."""

RECOMMENDATIONS_SYSTEM = """\
You are a knowledgeable learning advisor. Based on the user's recent learning history, suggest 3-4 related topics they might find interesting to explore next.

Your recommendations should build on what they've already learned and include a brief reason for each topic.

Format as a bulleted list."""

MOTIVATION_TEMPLATES = {
    "streak_milestone": [
        "🔥 {streak} days of continuous learning! You're building an incredible knowledge foundation.",
        "🌟 {streak}-day learning streak! Your commitment to growth is inspiring.",
        "🚀 {streak} days in a row! Consistent learning creates extraordinary results.",
    ],
    "goal_achieved": [
        "🎯 Daily goal smashed! You've logged {count} learnings today.",
        "✅ Goal achieved! {count} learnings today shows your dedication.",
        "🏆 Another day, another goal conquered! {count} learnings and counting.",
    ],
    "weekly_completion": [
        "📚 What a week! {count} new learnings added to your collection.",
        "🌱 Your learning garden grew by {count} entries this week.",
        "📈 Week complete: {count} learnings logged.",
    ],
    "nudge": [
        "📝 Nothing logged yet today. What's one thing you learned?",
        "🌟 Keep your {streak}-day streak alive: log one learning before the day ends!",
        "💡 A tiny note counts. What did you figure out today?",
    ],
    "comeback": [
        "👋 Welcome back! Ready to continue your learning journey?",
        "🌟 Great to see you again! What new discoveries await today?",
        "📚 Back to learning! Your future self will thank you.",
    ],
}

APOLOGY = "Sorry, I had an issue connecting to the AI service. Please try again later."
NOT_CONFIGURED = "Sorry, the AI features are not configured right now."
