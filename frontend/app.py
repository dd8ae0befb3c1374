import streamlit as st
import plotly.graph_objects as go
from datetime import datetime

from aceinbase.client import QuizApiClient, QuizApiError
from aceinbase.core.progress_store import score_band

# Page configuration
st.set_page_config(
    page_title="AceInBase",
    page_icon="✨",
    layout="centered",
    initial_sidebar_state="expanded"
)

client = QuizApiClient()

BAND_ICONS = {"good": "🟢", "fair": "🟡", "low": "🔴"}

# Initialize session state
if "view" not in st.session_state:
    st.session_state.view = "selector"
if "quiz" not in st.session_state:
    st.session_state.quiz = None
if "dashboard_subject" not in st.session_state:
    st.session_state.dashboard_subject = "Maths"

def main():
    st.title("✨ AceInBase")

    with st.sidebar:
        if st.button("🏠 Home"):
            back_to_menu()
        if st.button("📈 Dashboard"):
            st.session_state.view = "dashboard"
            st.rerun()

    if st.session_state.view == "dashboard":
        show_dashboard()
    elif st.session_state.view == "game" and st.session_state.quiz:
        show_game()
    else:
        show_subject_selector()

def call_api(action, *args):
    """Run one API call, showing an error instead of raising"""
    try:
        return action(*args)
    except QuizApiError as e:
        st.error(f"Error: {e.detail}")
    except Exception as e:
        st.error(f"Error connecting to API: {str(e)}")
    return None

def back_to_menu():
    quiz = st.session_state.quiz
    if quiz:
        call_api(client.discard_quiz, quiz["quiz_id"])
    st.session_state.quiz = None
    st.session_state.view = "selector"
    st.rerun()

def update_quiz(snapshot):
    if snapshot:
        st.session_state.quiz = snapshot
        st.rerun()

def show_subject_selector():
    st.header("Choose your subject")
    col1, col2 = st.columns(2)
    for column, subject, icon in ((col1, "Maths", "➗"), (col2, "Science", "🔬")):
        with column:
            if st.button(f"{icon} {subject}", use_container_width=True):
                snapshot = call_api(client.start_quiz, subject)
                if snapshot:
                    st.session_state.view = "game"
                    update_quiz(snapshot)

def show_game():
    quiz = st.session_state.quiz
    state = quiz["state"]

    if state in ("active", "finished", "reviewing"):
        col1, col2 = st.columns([3, 1])
        with col1:
            st.subheader(f"{quiz['subject']} Challenge")
            st.caption(quiz["topic"])
        with col2:
            st.metric("Score", quiz["score"])

    if state == "selecting-difficulty":
        show_difficulty_picker(quiz)
    elif state == "selecting-topic":
        show_topic_picker(quiz)
    elif state == "active":
        show_chat(quiz)
    elif state == "finished":
        show_results(quiz)
    elif state == "reviewing":
        show_review(quiz)

def show_difficulty_picker(quiz):
    st.header("Choose Your Challenge!")
    st.write("Select a difficulty to begin the quiz.")
    for column, difficulty in zip(st.columns(3), ("Simple", "Medium", "Advanced")):
        with column:
            if st.button(difficulty, use_container_width=True):
                update_quiz(call_api(client.choose_difficulty, quiz["quiz_id"], difficulty))

def show_topic_picker(quiz):
    st.header("Select a Topic")
    st.write("What would you like to be quizzed on?")
    columns = st.columns(3)
    for index, topic in enumerate(quiz["topics"]):
        with columns[index % 3]:
            if st.button(topic, use_container_width=True):
                with st.spinner("Ace is getting the quiz ready..."):
                    update_quiz(call_api(client.choose_topic, quiz["quiz_id"], topic))

def show_chat(quiz):
    for turn in quiz["transcript"]:
        role = "user" if turn["role"] == "user" else "assistant"
        with st.chat_message(role):
            st.write(turn["text"])

    if prompt := st.chat_input("Type your answer...", disabled=quiz["is_loading"]):
        with st.chat_message("user"):
            st.write(prompt)
        with st.chat_message("assistant"):
            with st.spinner("Thinking..."):
                update_quiz(call_api(client.send_message, quiz["quiz_id"], prompt))

def show_results(quiz):
    st.header("🎉 Quiz Complete!")
    st.write("Your final score is:")
    st.markdown(f"## {quiz['score']}")

    col1, col2, col3 = st.columns(3)
    with col1:
        if st.button("🔁 Play Again", use_container_width=True):
            update_quiz(call_api(client.play_again, quiz["quiz_id"]))
    with col2:
        if st.button("📚 Change Subject", use_container_width=True):
            back_to_menu()
    with col3:
        if "request-review" in quiz["available_actions"]:
            if st.button(f"🧠 Review Mistakes ({len(quiz['mistakes'])})", use_container_width=True):
                with st.spinner("Ace is thinking up some helpful explanations..."):
                    update_quiz(call_api(client.request_review, quiz["quiz_id"]))

def show_review(quiz):
    st.header("Let's Review! ✨")
    st.write("Here are some simple explanations for the topics you found tricky.")

    for item in quiz["review"]:
        with st.container(border=True):
            st.write("**You had trouble with:**")
            st.markdown(f"> {item['question']}")
            st.write("**Ace explains:**")
            st.write(item["explanation"])

    if st.button("⬅️ Back to Results"):
        update_quiz(call_api(client.finish_review, quiz["quiz_id"]))

def show_dashboard():
    st.header("📈 Progress Dashboard")

    subject = st.radio("Subject", ["Maths", "Science"], horizontal=True, key="dashboard_subject")
    summary = call_api(client.get_progress_summary, subject)
    if summary is None:
        return

    if summary["quizzes_taken"] == 0:
        st.info("No quizzes completed yet! Complete a quiz to see your progress here.")
    else:
        col1, col2 = st.columns(2)
        with col1:
            st.metric("Quizzes Taken", summary["quizzes_taken"])
        with col2:
            st.metric("Average Score", f"{summary['average_score']}%")

        st.subheader("Score Progression")
        points = summary["points"]
        if len(points) < 2:
            st.info("Complete one more quiz to see your progress chart.")
        else:
            fig = go.Figure(go.Scatter(
                x=[p["label"] for p in points],
                y=[p["score"] for p in points],
                text=[p["topic"] for p in points],
                mode="lines+markers",
                hovertemplate="%{x}<br>Score: %{y}<br>Topic: %{text}<extra></extra>",
            ))
            fig.update_layout(yaxis_range=[0, 100])
            st.plotly_chart(fig, use_container_width=True)

        st.subheader("Quiz History")
        rows = [
            {
                "Date": datetime.fromisoformat(p["completed_at"]).strftime("%d %b %Y"),
                "Topic": p["topic"],
                "Difficulty": p["difficulty"],
                "Score": f"{BAND_ICONS[score_band(p['score'])]} {p['score']}",
            }
            for p in reversed(points)
        ]
        st.table(rows)

    confirm = st.checkbox("I want to delete all my progress. This cannot be undone.")
    if st.button("🗑️ Clear All Progress", disabled=not confirm):
        cleared = call_api(client.clear_progress)
        if cleared:
            st.success("All progress cleared.")
            st.rerun()
        elif cleared is not None:
            st.warning("Could not clear your progress right now. Please try again later.")

if __name__ == "__main__":
    main()
