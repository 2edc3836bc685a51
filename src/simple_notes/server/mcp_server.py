"""MCP server exposing the Simple Notes menu commands as tools."""

import atexit
import json
import logging
import uuid
from typing import Optional

from mcp.server.fastmcp import FastMCP

from simple_notes.config import DEFAULT_FILE_NAME, DEFAULT_FOLDER_NAME, config
from simple_notes.exceptions import NotesError
from simple_notes.models.schema import OperationResult
from simple_notes.observability import metrics, timed_operation
from simple_notes.services.notes_service import NotesService

logger = logging.getLogger(__name__)

MAX_NAME_LENGTH = 255
MAX_CONTENT_LENGTH = 10_000_000  # 10 MB


def _validate_input_lengths(
    name: Optional[str] = None, content: Optional[str] = None
) -> None:
    """Validate input string lengths at the MCP boundary."""
    if name and len(name) > MAX_NAME_LENGTH:
        raise ValueError(f"Name exceeds maximum length of {MAX_NAME_LENGTH} characters")
    if content and len(content) > MAX_CONTENT_LENGTH:
        raise ValueError(
            f"Content exceeds maximum length of {MAX_CONTENT_LENGTH} characters"
        )


def format_result(result: OperationResult, success_message: str) -> str:
    """Render an operation outcome as a tool response."""
    if result.cancelled:
        return "Cancelled by user"
    if not result.success:
        message = f"Error: {result.error}"
        if result.failures:
            message += "\n" + "\n".join(f"  - {f}" for f in result.failures)
        return message
    return success_message


class NotesMcpServer:
    """MCP server for Simple Notes."""

    def __init__(self, service: Optional[NotesService] = None):
        """Initialize the MCP server.

        Args:
            service: Session to serve. A configured one is created and
                loaded if None.
        """
        self.mcp = FastMCP(config.server_name)
        if service is None:
            service = NotesService()
            service.load()
        self.notes_service = service
        # Flush the pending edit on quit
        atexit.register(self._shutdown)
        self._register_tools()

    def _shutdown(self) -> None:
        """Flush pending edits and release resources on server exit."""
        self.notes_service.shutdown()

    def format_error_response(self, error: Exception) -> str:
        """Format an error response in a consistent way.

        Args:
            error: The exception that occurred

        Returns:
            Formatted error message with appropriate level of detail
        """
        error_id = str(uuid.uuid4())[:8]

        if isinstance(error, NotesError):
            logger.error(
                f"[{error.code.name}] [{error_id}]: {error.message}",
                extra={"error_details": error.details},
            )
            return f"Error: {error.message}"
        elif isinstance(error, ValueError):
            logger.error(f"Validation error [{error_id}]: {str(error)}")
            return f"Error: Invalid input (ref: {error_id})"
        elif isinstance(error, OSError):
            logger.error(f"File system error [{error_id}]: {str(error)}", exc_info=True)
            return f"Error: A file system error occurred (ref: {error_id})"
        else:
            logger.error(f"Unexpected error [{error_id}]: {str(error)}", exc_info=True)
            return f"Error: An unexpected error occurred (ref: {error_id})"

    def _register_tools(self) -> None:
        """Register MCP tools."""

        @self.mcp.tool(name="notes_new_file")
        def notes_new_file(
            name: str = DEFAULT_FILE_NAME, folder_id: Optional[str] = None
        ) -> str:
            """Create an empty note.
            Args:
                name: File name (defaults to "New File.txt")
                folder_id: Folder to place it in; unfiled if omitted or unknown
            """
            with timed_operation("notes_new_file") as op:
                try:
                    _validate_input_lengths(name=name)
                    file_id = self.notes_service.create_file(name, folder_id=folder_id)
                    op["file_id"] = file_id
                    return f"File created with ID: {file_id}"
                except Exception as e:
                    return self.format_error_response(e)

        @self.mcp.tool(name="notes_new_folder")
        def notes_new_folder(name: str = DEFAULT_FOLDER_NAME) -> str:
            """Create a folder.
            Args:
                name: Folder name (defaults to "New Folder")
            """
            with timed_operation("notes_new_folder") as op:
                try:
                    _validate_input_lengths(name=name)
                    folder_id = self.notes_service.create_folder(name)
                    op["folder_id"] = folder_id
                    return f"Folder created with ID: {folder_id}"
                except Exception as e:
                    return self.format_error_response(e)

        @self.mcp.tool(name="notes_rename")
        def notes_rename(item_id: str, item_type: str, new_name: str) -> str:
            """Rename a file or folder.
            Args:
                item_id: ID of the file or folder
                item_type: "file" or "folder"
                new_name: New name; blank names are ignored
            """
            with timed_operation("notes_rename", item_id=item_id) as op:
                try:
                    _validate_input_lengths(name=new_name)
                    changed = self.notes_service.rename(item_id, item_type.lower(), new_name)
                    op["changed"] = changed
                    if not changed:
                        return f"Nothing renamed: unknown {item_type} or empty name"
                    return f"Renamed {item_type} {item_id} to {new_name.strip()}"
                except Exception as e:
                    return self.format_error_response(e)

        @self.mcp.tool(name="notes_move")
        def notes_move(file_id: str, target_folder_id: str) -> str:
            """Move a note into an existing folder.
            Args:
                file_id: ID of the note
                target_folder_id: ID of the destination folder
            """
            with timed_operation("notes_move", file_id=file_id) as op:
                try:
                    changed = self.notes_service.move(file_id, target_folder_id)
                    op["changed"] = changed
                    if not changed:
                        return "Nothing moved: unknown file or folder"
                    return f"Moved {file_id} to folder {target_folder_id}"
                except Exception as e:
                    return self.format_error_response(e)

        @self.mcp.tool(name="notes_delete")
        def notes_delete(item_id: str, item_type: str) -> str:
            """Delete a file, or a folder (its notes move to the top level).
            Args:
                item_id: ID of the file or folder
                item_type: "file" or "folder"
            """
            with timed_operation("notes_delete", item_id=item_id) as op:
                try:
                    changed = self.notes_service.delete(item_id, item_type.lower())
                    op["changed"] = changed
                    if not changed:
                        return f"Nothing deleted: unknown {item_type} {item_id}"
                    return f"Deleted {item_type} {item_id}"
                except Exception as e:
                    return self.format_error_response(e)

        @self.mcp.tool(name="notes_open")
        def notes_open(file_id: str) -> str:
            """Open a note for editing and return its content.
            Args:
                file_id: ID of the note
            """
            with timed_operation("notes_open", file_id=file_id) as op:
                try:
                    note = self.notes_service.open_file(file_id)
                    op["found"] = note is not None
                    if note is None:
                        return f"File not found: {file_id}"
                    return f"# {note.name}\nID: {note.id}\n\n{note.content}"
                except Exception as e:
                    return self.format_error_response(e)

        @self.mcp.tool(name="notes_edit")
        def notes_edit(content: str) -> str:
            """Replace the content of the open note. Saved after a short pause.
            Args:
                content: Full new text of the note
            """
            with timed_operation("notes_edit") as op:
                try:
                    _validate_input_lengths(content=content)
                    accepted = self.notes_service.edit_content(content)
                    op["accepted"] = accepted
                    if not accepted:
                        return "Error: No file is currently open"
                    return "Edit recorded"
                except Exception as e:
                    return self.format_error_response(e)

        @self.mcp.tool(name="notes_save")
        def notes_save() -> str:
            """Save the open note and mirror all notes to disk now."""
            with timed_operation("notes_save") as op:
                try:
                    result = self.notes_service.save()
                    op["success"] = result.success
                    return format_result(result, f"Saved {result.count} notes")
                except Exception as e:
                    return self.format_error_response(e)

        @self.mcp.tool(name="notes_export_current")
        def notes_export_current(path: str = "") -> str:
            """Export the open note as a plain text file.
            Args:
                path: Destination file; empty cancels
            """
            with timed_operation("notes_export_current") as op:
                try:
                    result = self.notes_service.export_note(path or None)
                    op["success"] = result.success
                    return format_result(result, f"File exported to: {result.path}")
                except Exception as e:
                    return self.format_error_response(e)

        @self.mcp.tool(name="notes_export_all")
        def notes_export_all(export_dir: str = "") -> str:
            """Export every note as .txt files, one directory per folder.
            Args:
                export_dir: Destination directory; empty cancels
            """
            with timed_operation("notes_export_all") as op:
                try:
                    result = self.notes_service.export_all(export_dir or None)
                    op["count"] = result.count
                    return format_result(
                        result, f"Exported {result.count} files to {result.path}"
                    )
                except Exception as e:
                    return self.format_error_response(e)

        @self.mcp.tool(name="notes_import_from_folder")
        def notes_import_from_folder(import_dir: str = "") -> str:
            """Import every .txt and .snote file under a directory.
            Args:
                import_dir: Directory to scan recursively; empty cancels
            """
            with timed_operation("notes_import_from_folder") as op:
                try:
                    result = self.notes_service.import_from_folder(import_dir or None)
                    op["count"] = result.count
                    return format_result(result, f"Successfully imported {result.count} files")
                except Exception as e:
                    return self.format_error_response(e)

        @self.mcp.tool(name="notes_export_database")
        def notes_export_database(path: str = "") -> str:
            """Export all notes and folders as one JSON file.
            Args:
                path: Destination file; empty cancels
            """
            with timed_operation("notes_export_database") as op:
                try:
                    result = self.notes_service.export_database(path or None)
                    op["success"] = result.success
                    return format_result(
                        result, f"Notes database exported to {result.path}"
                    )
                except Exception as e:
                    return self.format_error_response(e)

        @self.mcp.tool(name="notes_import_database")
        def notes_import_database(path: str = "", confirm: bool = False) -> str:
            """Replace ALL notes with the contents of a JSON export.
            Args:
                path: JSON file to import; empty cancels
                confirm: Must be true; the current notes are replaced
            """
            with timed_operation("notes_import_database") as op:
                try:
                    result = self.notes_service.import_database(path or None, confirm=confirm)
                    op["success"] = result.success
                    if result.cancelled and path and not confirm:
                        return "Cancelled: pass confirm=true to replace all current notes"
                    return format_result(
                        result, f"Notes database imported ({result.count} files)"
                    )
                except Exception as e:
                    return self.format_error_response(e)

        @self.mcp.tool(name="notes_list")
        def notes_list(source: str = "store") -> str:
            """List folders and notes.
            Args:
                source: "store" for the in-memory tree, "disk" for the mirror
                    directory, "backups" for pre-import snapshots
            """
            with timed_operation("notes_list", source=source):
                try:
                    if source == "disk":
                        listing = self.notes_service.list_disk_notes()
                        return json.dumps(
                            {"folders": listing.folders, "files": listing.files},
                            indent=2,
                        )
                    if source == "backups":
                        return json.dumps(self.notes_service.list_backups(), indent=2)
                    if source != "store":
                        return f"Invalid source: {source}. Valid sources are: store, disk, backups"
                    return json.dumps(
                        self.notes_service.list_tree(), indent=2, ensure_ascii=False
                    )
                except Exception as e:
                    return self.format_error_response(e)

        @self.mcp.tool(name="notes_restore_backup")
        def notes_restore_backup(backup_path: str = "") -> str:
            """Restore a pre-import snapshot and reload notes from it.
            Args:
                backup_path: Snapshot file from notes_list(source="backups"); empty cancels
            """
            with timed_operation("notes_restore_backup") as op:
                try:
                    result = self.notes_service.restore_backup(backup_path or None)
                    op["success"] = result.success
                    return format_result(result, f"Restored {result.count} files")
                except Exception as e:
                    return self.format_error_response(e)

        @self.mcp.tool(name="notes_status")
        def notes_status() -> str:
            """Show save status, the open note and server metrics."""
            with timed_operation("notes_status"):
                try:
                    service = self.notes_service
                    output = f"Status: {service.status.value}\n"
                    output += f"Open file: {service.current_file_id or 'none'}\n"
                    output += f"Folders: {len(service.store.folders)}\n"
                    output += f"Files: {len(service.store.files)}\n"
                    output += f"Notes directory: {service.mirror.root}\n"
                    summary = metrics.get_summary()
                    output += f"Operations: {summary['total_operations']} "
                    output += f"({summary['total_errors']} errors)\n"
                    return output
                except Exception as e:
                    return self.format_error_response(e)

    def run(self) -> None:
        """Run the MCP server."""
        self.mcp.run()
