class LLMPrompt:
    split_system_prompt = (
        "You are a test expectation analyzer. Split UI testing expectations into individual tests and "
        "extract URL parameters. Return only valid JSON object with expectations array and urlParams object."
    )

    split_plain_system_prompt = (
        "You are a test expectation analyzer. Split UI testing expectations into individual tests. "
        "Return only a valid JSON array of strings."
    )

    split_rules = """Rules for expectations:
1. Split by distinct test scenarios.
2. Keep related test steps within the same scenario grouped together as a single item. Group standalone assertions (content checks that don't require user actions) together. For tests requiring user interactions (clicks, navigation, form filling, etc.), preserve the exact order as specified in the original input.
3. Preserve original wording unless a **minimal rewrite** is needed for clarity.
4. Each item should represent either a complete test flow or an independent verification.
5. When combining steps within a test, use "then" to connect sequential actions.
6. Do not add any new expectations that are not explicitly mentioned by the user."""

    url_param_rules = """Rules for urlParams:
1. Extract any URL parameter values mentioned in the expectations
2. Look for patterns like: "with id 413", "user john", "category electronics", "use 'ai' as subdomain", "slug example-post"
3. Map parameter names to their specified values
4. If no parameters specified, return empty object: {}
5. Use parameter names that match Next.js conventions: id, slug, userId, category, subdomain, etc.
6. For catch-all routes [...slug], use "slug" as the parameter name"""

    split_prompt_template = """You are a Senior QA analyzing UI test expectations.

Your task: Extract test expectations AND URL parameter specifications from user input.

Return a JSON object with this exact structure:
{{
  "expectations": ["array of test expectation strings"],
  "urlParams": {{
    "paramName": "value"
  }}
}}

{split_rules}

{url_param_rules}

User expectations:
{comment}"""

    split_plain_prompt_template = """You are a Senior QA analyzing UI test expectations.

Your task: Split the user input into independent test expectations.

Return a JSON array of strings, for example: ["first expectation", "second expectation"]

{split_rules}

User expectations:
{comment}"""

    synthesis_system_prompt = """You are a Playwright testing expert. You translate one UI test expectation into a JSON check program.
Output ONLY the JSON object, no explanations, no markdown, no code.

The program format is:
{"category": "<PAGE_LOAD|CONTENT_PRESENCE|INTERACTION|REDIRECT|VISUAL>", "instructions": [<instruction>, ...]}

Each instruction is an object with a "type" and, depending on the type, "locate" and "param":
- {"type": "Navigate", "param": {"url": "/path or absolute url"}}
- {"type": "Click", "locate": <locator>}
- {"type": "Fill", "locate": <locator>, "param": {"value": "text"}}
- {"type": "Select", "locate": <locator>, "param": {"value": "option label or value"}}
- {"type": "Hover", "locate": <locator>}
- {"type": "Check", "locate": <locator>}
- {"type": "Press", "param": {"key": "Enter"}, "locate": <locator, optional>}
- {"type": "Wait", "param": {"timeMs": 500}}
- {"type": "AssertURL", "param": {"url": "exact url"}} or {"type": "AssertURL", "param": {"contains": "/part"}}
- {"type": "AssertTitle", "param": {"title": "exact title"}} or {"type": "AssertTitle", "param": {"contains": "part"}}
- {"type": "AssertTextVisible", "param": {"text": "visible text"}}
- {"type": "AssertVisible", "locate": <locator>}
- {"type": "AssertHidden", "locate": <locator>}
- {"type": "AssertText", "locate": <locator>, "param": {"text": "expected text"}}
- {"type": "AssertValue", "locate": <locator>, "param": {"value": "expected input value"}}
- {"type": "AssertCount", "locate": <locator>, "param": {"count": 3}}
- {"type": "AssertCSS", "locate": <locator>, "param": {"property": "display", "value": "flex"}}
- {"type": "AssertRedirect", "param": {"status": 301, "location_contains": "/login", "min_count": 1}} (all params optional)

A locator is exactly one of:
- {"role": "button", "name": "Get Started"}
- {"text": "visible text", "exact": false}
- {"label": "Email"}
- {"placeholder": "Search"}
- {"test_id": "submit"}
- {"selector": "css selector"}
Add "nth": 0 to a locator to pick one element when several match.

When the user includes placeholders in their request, choose values according to their intent:
- For generic placeholders like {random}, {value}, {data} - use contextually appropriate example values
- For choice placeholders like {any from: [option1, option2, option3]} - pick one of the provided options
- For range placeholders like {number from 1-10} - pick a number within the range
- For pattern placeholders like {name}, {email}, {date} - use realistic sample data matching the format"""

    categories = """EXPECTATION CATEGORIES & INSTRUCTION TEMPLATES:

1. PAGE_LOAD (keywords: "loaded successfully", "responds", "accessible", "works", "loads")
   Template: [{{"type": "AssertURL", "param": {{"url": "{current_url}"}}}}]
   - ONLY check URL or basic page state
   - DO NOT check specific content unless explicitly mentioned

2. CONTENT_PRESENCE (keywords: "contains", "shows", "displays", "has", "visible")
   Template: [{{"type": "AssertTextVisible", "param": {{"text": "expected text"}}}}]
   - Check for specific text, elements, or attributes mentioned
   - Use precise locators based on mentioned content

3. INTERACTION (keywords: "click", "submit", "fill", "navigate", "select")
   Template: [{{"type": "Click", "locate": {{"role": "button", "name": "Submit"}}}}, {{"type": "AssertTextVisible", "param": {{"text": "result"}}}}]
   - Perform the action then verify the result
   - Test the specific interaction mentioned

4. REDIRECT (keywords: "redirect", "301", "302", other status codes){redirect_info}
   Template options:
   - For specific status code (e.g. "should redirect with 301"): [{{"type": "AssertRedirect", "param": {{"status": 301}}}}]
   - For any redirect (e.g. "should redirect"): [{{"type": "AssertRedirect", "param": {{"min_count": 1}}}}]
   - For redirect to specific page (e.g. "should redirect to /login"): [{{"type": "AssertRedirect", "param": {{"location_contains": "/login"}}}}]

5. VISUAL (keywords: "layout", "responsive", "styling", "appearance")
   Template: [{{"type": "AssertCSS", "locate": {{"selector": "nav"}}, "param": {{"property": "display", "value": "flex"}}}}]
   - Check visual properties and styling"""

    redirect_info = (
        "\n- REDIRECT CHAIN AVAILABLE: the page session recorded all HTTP responses with redirect info"
        "\n- redirectChain format: [{{url, status, location}}, ...] where location is the redirect target"
        "\n- AssertRedirect checks the recorded redirectChain: {redirect_summary}"
    )

    rules = """RULES:
- Match expectation to ONE category above
- Use ONLY the instruction template for that category
- Be MINIMAL - don't add extra assertions
- Output ONLY the JSON program"""

    static_rule = (
        "- This expectation is checked on a freshly loaded page: unless the category is INTERACTION, "
        "do NOT use Click, Fill, Select, Hover, Check or Press"
    )

    flow_rules = """FLOW CONTEXT:
- This is one step of a multi-step user flow; the page keeps cookies, storage and state from previous steps
- Do NOT navigate unless the step explicitly asks to go to another page
- For action steps, perform the action and then verify its visible result"""

    synthesis_prompt_template = """Generate ONLY the check program to verify the expectation.

CRITICAL: First categorize the expectation, then generate the matching instructions:

{categories}

{rules}
{extra_rules}
CURRENT CONTEXT:
- Page already loaded at: {current_url}
- Page content provided below for reference only

PAGE CONTENT:
{page_text}

User Expectation: "{expectation}"

Category: [Determine from keywords above]
Generate the minimal JSON check program:"""
